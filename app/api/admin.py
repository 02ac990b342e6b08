"""
app/api/admin.py

Purpose: Administration endpoints (admin session required)

- Dashboard counters and account listing
- Document creation
- Maintenance: overdue loans, reconciliation report
- Availability override (legacy toggle, can be disabled)
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_accounts, get_catalogue, get_ledger, require_admin
from app.api.documents import refusal
from app.core.config import settings
from app.core.exceptions import AuthorizationError
from app.core.logging import get_logger, LogContext
from app.schemas.library import DocumentCreateRequest
from app.services.account_service import AccountService
from app.services.catalogue_service import CatalogueService
from app.services.loan_ledger import LoanLedger
from utils.constants import DOCUMENT_ADDED_MESSAGE, TOGGLE_DISABLED_MESSAGE

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/dashboard")
async def dashboard(catalogue: CatalogueService = Depends(get_catalogue)):
    return {"success": True, "dashboard": await catalogue.dashboard()}


@router.get("/users")
async def list_users(accounts: AccountService = Depends(get_accounts)):
    users = await accounts.list_users()
    return {"success": True, "count": len(users), "users": users}


@router.post("/documents")
async def add_document(
    payload: DocumentCreateRequest,
    catalogue: CatalogueService = Depends(get_catalogue),
):
    document_id = await catalogue.add_document(
        payload.title,
        payload.author,
        document_type=payload.document_type,
        year=payload.year,
    )
    return {"success": True, "message": DOCUMENT_ADDED_MESSAGE, "document_id": document_id}


@router.get("/loans/overdue")
async def overdue_loans(
    as_of: Optional[datetime] = Query(None, description="Defaults to now (UTC)"),
    ledger: LoanLedger = Depends(get_ledger),
):
    if as_of is not None and as_of.tzinfo is not None:
        # Stored timestamps are naive UTC
        as_of = as_of.astimezone(timezone.utc).replace(tzinfo=None)
    loans = await ledger.overdue_loans(as_of)
    return {"success": True, "count": len(loans), "loans": loans}


@router.get("/reconcile")
async def reconcile(ledger: LoanLedger = Depends(get_ledger)):
    report = await ledger.reconcile()
    return {"success": True, "report": report.as_dict()}


@router.post("/documents/{document_id}/toggle")
async def toggle_availability(
    document_id: str,
    session: Dict[str, Any] = Depends(require_admin),
    ledger: LoanLedger = Depends(get_ledger),
):
    if not settings.ALLOW_AVAILABILITY_OVERRIDE:
        raise AuthorizationError(TOGGLE_DISABLED_MESSAGE)

    with LogContext(user_id=session["user_id"]):
        outcome = await ledger.toggle(document_id)
    if not outcome.ok:
        raise refusal(outcome)

    return {"success": True, "availability": outcome.availability.value}

"""
app/api/documents.py

Purpose: Catalogue and loan endpoints

- Document listing and catalogue statistics
- Borrow / return for the logged-in user
- The user's current loans

Ledger refusals become error responses here; the ledger itself never raises
for them.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.api.deps import get_catalogue, get_ledger, require_session
from app.core.exceptions import MediathequeError
from app.core.logging import get_logger
from app.models.ledger import LedgerOutcome
from app.services.catalogue_service import CatalogueService
from app.services.loan_ledger import LoanLedger
from utils.constants import (
    LEDGER_ERROR_MESSAGES,
    LEDGER_ERROR_STATUS,
    BORROW_SUCCESS_MESSAGE,
    DOCUMENT_RETURNED_MESSAGE,
)
from utils.time_utils import format_due_date

logger = get_logger(__name__)
router = APIRouter()


def refusal(outcome: LedgerOutcome) -> MediathequeError:
    """Turns a ledger refusal into the error rendered to the client."""
    details = {"limit": outcome.limit} if outcome.limit is not None else None
    return MediathequeError(
        LEDGER_ERROR_MESSAGES[outcome.error].format(limit=outcome.limit),
        code=outcome.error.value,
        status_code=LEDGER_ERROR_STATUS[outcome.error],
        details=details,
    )


@router.get("/documents")
async def list_documents(catalogue: CatalogueService = Depends(get_catalogue)):
    documents = await catalogue.list_documents()
    return {"success": True, "count": len(documents), "documents": documents}


@router.post("/documents/{document_id}/borrow")
async def borrow_document(
    document_id: str,
    session: Dict[str, Any] = Depends(require_session),
    ledger: LoanLedger = Depends(get_ledger),
):
    outcome = await ledger.borrow(document_id, session["user_id"])
    if not outcome.ok:
        raise refusal(outcome)

    return {
        "success": True,
        "message": BORROW_SUCCESS_MESSAGE.format(due_date=format_due_date(outcome.due_at)),
        "loan_id": outcome.loan_id,
        "due_at": outcome.due_at,
    }


@router.post("/documents/{document_id}/return")
async def return_document(
    document_id: str,
    session: Dict[str, Any] = Depends(require_session),
    ledger: LoanLedger = Depends(get_ledger),
):
    outcome = await ledger.return_document(document_id, session["user_id"])
    if not outcome.ok:
        raise refusal(outcome)

    return {"success": True, "message": DOCUMENT_RETURNED_MESSAGE, "loan_id": outcome.loan_id}


@router.get("/stats")
async def stats(ledger: LoanLedger = Depends(get_ledger)):
    return {"success": True, "stats": (await ledger.stats()).as_dict()}


@router.get("/users/me/loans")
async def my_loans(
    session: Dict[str, Any] = Depends(require_session),
    ledger: LoanLedger = Depends(get_ledger),
):
    loans = await ledger.active_loans(session["user_id"])
    return {"success": True, "count": len(loans), "loans": loans}

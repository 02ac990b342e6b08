"""
app/api/deps.py

Purpose: Request dependencies

- Hands out the store-bound services built during startup
- Session cookie resolution
- User and admin guards
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request

from app.core.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.models.user import Role
from app.services.account_service import AccountService
from app.services.catalogue_service import CatalogueService
from app.services.loan_ledger import LoanLedger
from utils.constants import LOGIN_REQUIRED_MESSAGE, ADMIN_REQUIRED_MESSAGE


def get_ledger(request: Request) -> LoanLedger:
    return request.app.state.ledger


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_catalogue(request: Request) -> CatalogueService:
    return request.app.state.catalogue


async def get_optional_session(
    request: Request,
    accounts: AccountService = Depends(get_accounts),
) -> Optional[Dict[str, Any]]:
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    return await accounts.resolve_session(session_id)


async def require_session(
    session: Optional[Dict[str, Any]] = Depends(get_optional_session),
) -> Dict[str, Any]:
    if session is None:
        raise AuthenticationError(LOGIN_REQUIRED_MESSAGE)
    return session


async def require_admin(
    session: Optional[Dict[str, Any]] = Depends(get_optional_session),
) -> Dict[str, Any]:
    # Anonymous callers get 403 as well, like any non-admin
    if session is None or session.get("role") != Role.ADMIN.value:
        raise AuthorizationError(ADMIN_REQUIRED_MESSAGE)
    return session

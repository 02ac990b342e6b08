"""
app/api/auth.py

Purpose: Account endpoints

- Registration
- Login (sets the session cookie) and logout
- Current user profile
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.deps import get_accounts, require_session
from app.core.config import settings
from app.core.logging import get_logger
from app.schemas.library import RegisterRequest, LoginRequest
from app.services.account_service import AccountService
from utils.constants import ACCOUNT_CREATED_MESSAGE, LOGIN_SUCCESS_MESSAGE, LOGOUT_MESSAGE

logger = get_logger(__name__)
router = APIRouter(prefix="/auth")


@router.post("/register")
async def register(
    payload: RegisterRequest,
    accounts: AccountService = Depends(get_accounts),
):
    user = await accounts.register(payload.name, payload.email, payload.password)
    return {
        "success": True,
        "message": ACCOUNT_CREATED_MESSAGE,
        "user_id": user.id,
    }


@router.post("/login")
async def login(
    payload: LoginRequest,
    accounts: AccountService = Depends(get_accounts),
):
    session_id, user = await accounts.login(payload.email, payload.password)

    response = JSONResponse(content={
        "success": True,
        "message": LOGIN_SUCCESS_MESSAGE,
        "user": user.model_dump(mode="json"),
    })
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        session_id,
        max_age=settings.SESSION_TIMEOUT_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    return response


@router.post("/logout")
async def logout(
    request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    await accounts.logout(request.cookies.get(settings.SESSION_COOKIE_NAME))

    response = JSONResponse(content={"success": True, "message": LOGOUT_MESSAGE})
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


@router.get("/me")
async def me(
    session: Dict[str, Any] = Depends(require_session),
    accounts: AccountService = Depends(get_accounts),
):
    user = await accounts.get_user(session["user_id"])
    return {"success": True, "user": user}

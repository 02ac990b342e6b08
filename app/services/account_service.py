"""
app/services/account_service.py

Purpose: Account and session management

- Registration with per-account borrow limit
- Login / logout backed by the sessions collection
- Session lookup with expiry
- Profile and admin user listing
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Callable, Dict, Any, List, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from app.core.logging import get_logger, LogContext
from app.db.store import LibraryStore, DuplicateRecordError, ASCENDING
from app.models.user import User, Role, new_user_record
from utils.constants import (
    MISSING_REGISTRATION_FIELDS_MESSAGE,
    PASSWORD_TOO_SHORT_MESSAGE,
    EMAIL_TAKEN_MESSAGE,
    INVALID_EMAIL_MESSAGE,
    MISSING_CREDENTIALS_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
    LEDGER_ERROR_MESSAGES,
)
from app.models.ledger import LedgerError
from utils.time_utils import calculate_session_expiry, is_session_expired
from utils.validation_utils import validate_email, normalize_email, sanitize_input

logger = get_logger(__name__)


def hash_password(password: str, secret: Optional[str] = None) -> str:
    """Salted SHA-256 digest; not meant as a hardened password scheme."""
    salt = secret if secret is not None else settings.SECRET_KEY
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


def verify_password(password: str, password_hash: str, secret: Optional[str] = None) -> bool:
    return secrets.compare_digest(hash_password(password, secret), password_hash or "")


class AccountService:
    """Service for accounts and login sessions."""

    def __init__(
        self,
        store: LibraryStore,
        default_borrow_limit: int = 3,
        min_password_length: int = 3,
        session_timeout_minutes: int = 24 * 60,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.default_borrow_limit = default_borrow_limit
        self.min_password_length = min_password_length
        self.session_timeout_minutes = session_timeout_minutes
        self.clock = clock

    async def register(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        role: Role = Role.USER,
        borrow_limit: Optional[int] = None,
    ) -> User:
        """
        Creates an account with no active loans.

        Raises:
            ValidationError: missing field, invalid email or short password
            ConflictError: email already registered
        """
        name = sanitize_input(name, max_length=200)
        if not name or not email or not password:
            raise ValidationError(MISSING_REGISTRATION_FIELDS_MESSAGE)
        if not validate_email(email):
            raise ValidationError(INVALID_EMAIL_MESSAGE)
        if len(password) < self.min_password_length:
            raise ValidationError(PASSWORD_TOO_SHORT_MESSAGE)

        email = normalize_email(email)
        if await self.store.users.find_one({"email": email}):
            raise ConflictError(EMAIL_TAKEN_MESSAGE)

        record = new_user_record(
            name=name,
            email=email,
            password_hash=hash_password(password),
            borrow_limit=borrow_limit or self.default_borrow_limit,
            role=role,
            created_at=self.clock(),
        )
        try:
            user_id = await self.store.users.insert(record)
        except DuplicateRecordError:
            raise ConflictError(EMAIL_TAKEN_MESSAGE)

        logger.info(f"Account created ({role.value})", extra={"user_id": user_id})
        return User.from_record({**record, "id": user_id})

    async def authenticate(self, email: Optional[str], password: Optional[str]) -> User:
        """
        Checks credentials.

        Raises:
            ValidationError: email or password missing
            AuthenticationError: unknown email or wrong password
        """
        if not email or not password:
            raise ValidationError(MISSING_CREDENTIALS_MESSAGE)

        record = await self.store.users.find_one({"email": normalize_email(email)})
        if record is None or not verify_password(password, record.get("password_hash")):
            logger.info("Failed login attempt")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        return User.from_record(record)

    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[str, User]:
        """
        Authenticates and opens a session.

        Returns:
            (session_id, user)
        """
        user = await self.authenticate(email, password)

        now = self.clock()
        session_id = secrets.token_urlsafe(32)
        await self.store.sessions.insert({
            "session_id": session_id,
            "user_id": user.id,
            "role": user.role.value,
            "created_at": now,
            "expires_at": calculate_session_expiry(now, self.session_timeout_minutes),
        })

        with LogContext(user_id=user.id):
            logger.info("User logged in")
        return session_id, user

    async def logout(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        deleted = await self.store.sessions.delete_where({"session_id": session_id})
        return deleted > 0

    async def resolve_session(self, session_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Returns the live session for a token, or None.

        Expired sessions are deleted on sight (Mongo's TTL monitor only runs
        once a minute).
        """
        if not session_id:
            return None

        session = await self.store.sessions.find_one({"session_id": session_id})
        if session is None:
            return None

        if is_session_expired(session.get("expires_at"), self.clock()):
            await self.store.sessions.delete_where({"session_id": session_id})
            logger.debug("Session expired", extra={"user_id": session.get("user_id")})
            return None

        return session

    async def get_user(self, user_id: str) -> User:
        record = await self.store.users.find_by_id(user_id)
        if record is None:
            raise ResourceNotFoundError(LEDGER_ERROR_MESSAGES[LedgerError.USER_NOT_FOUND])
        return User.from_record(record)

    async def list_users(self) -> List[User]:
        records = await self.store.users.find_many(
            sort=[("created_at", ASCENDING)],
            exclude=("password_hash",),
        )
        return [User.from_record(r) for r in records]

    async def ensure_account(
        self,
        name: str,
        email: str,
        password: str,
        role: Role,
        borrow_limit: int,
    ) -> bool:
        """
        Creates the account unless the email is already registered.

        Returns:
            True if an account was created
        """
        if await self.store.users.find_one({"email": normalize_email(email)}):
            return False
        await self.register(name, email, password, role=role, borrow_limit=borrow_limit)
        return True

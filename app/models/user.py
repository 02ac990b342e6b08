"""
app/models/user.py

Purpose: Account model

- Identity, email and role
- Per-account borrow limit
- Counter of currently active loans
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """
    A library account as stored, minus the password hash.

    ``active_borrow_count`` must equal the number of active loans of the
    user and never exceed ``borrow_limit``.
    """

    id: str
    name: str
    email: str
    role: Role = Role.USER
    created_at: Optional[datetime] = None
    borrow_limit: int = Field(default=3, ge=1)
    active_borrow_count: int = Field(default=0, ge=0)

    @property
    def can_borrow(self) -> bool:
        return self.active_borrow_count < self.borrow_limit

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "User":
        return cls(**{k: v for k, v in record.items() if k != "password_hash"})


def new_user_record(
    name: str,
    email: str,
    password_hash: str,
    borrow_limit: int,
    role: Role = Role.USER,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Builds the stored form of a new account with no active loans."""
    return {
        "name": name,
        "email": email.lower(),
        "password_hash": password_hash,
        "role": role.value,
        "created_at": created_at or datetime.utcnow(),
        "borrow_limit": borrow_limit,
        "active_borrow_count": 0,
    }

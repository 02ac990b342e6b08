"""
app/models/loan.py

Purpose: Loan record model

- One record per borrow event
- Due date fixed at borrow time
- Moves from active to returned exactly once; never deleted
"""

from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime, timedelta
from enum import Enum


class LoanStatus(str, Enum):
    ACTIVE = "active"
    RETURNED = "returned"


class Loan(BaseModel):
    id: str
    document_id: str
    document_title: Optional[str] = None
    user_id: str
    user_email: Optional[str] = None
    borrowed_at: datetime
    due_at: datetime
    returned_at: Optional[datetime] = None
    status: LoanStatus = LoanStatus.ACTIVE

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Loan":
        return cls(**record)


def new_loan_record(
    document_id: str,
    user_id: str,
    borrowed_at: datetime,
    loan_period: timedelta,
    document_title: Optional[str] = None,
    user_email: Optional[str] = None,
) -> Dict[str, Any]:
    """Builds the stored form of a loan opened at ``borrowed_at``."""
    return {
        "document_id": document_id,
        "document_title": document_title,
        "user_id": user_id,
        "user_email": user_email,
        "borrowed_at": borrowed_at,
        "due_at": borrowed_at + loan_period,
        "returned_at": None,
        "status": LoanStatus.ACTIVE.value,
    }

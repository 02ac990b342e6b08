"""
app/models/ledger.py

Purpose: Loan ledger results

- Business-rule failures as typed outcomes (never raised)
- Catalogue statistics
- Reconciliation report for the non-transactional write window
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from app.models.document import Availability


class LedgerError(str, Enum):
    """Expected refusals of a borrow, return or toggle request."""

    USER_NOT_FOUND = "USER_NOT_FOUND"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    BORROW_LIMIT_EXCEEDED = "BORROW_LIMIT_EXCEEDED"
    DOCUMENT_UNAVAILABLE = "DOCUMENT_UNAVAILABLE"
    NO_ACTIVE_LOAN = "NO_ACTIVE_LOAN"


@dataclass
class LedgerOutcome:
    """
    Result of a ledger operation.

    Exactly one of ``error`` (refusal) or the success payload is meaningful.
    ``limit`` accompanies BORROW_LIMIT_EXCEEDED so it can be shown to the user.
    """

    error: Optional[LedgerError] = None
    due_at: Optional[datetime] = None
    loan_id: Optional[str] = None
    limit: Optional[int] = None
    availability: Optional[Availability] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: LedgerError, **kwargs) -> "LedgerOutcome":
        return cls(error=error, **kwargs)

    @classmethod
    def success(cls, **kwargs) -> "LedgerOutcome":
        return cls(**kwargs)


@dataclass
class LibraryStats:
    total: int = 0
    available: int = 0
    borrowed: int = 0
    total_borrow_count: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class DocumentDiscrepancy:
    """A document whose availability disagrees with its active loans."""

    document_id: str
    availability: str
    active_loans: int


@dataclass
class UserDiscrepancy:
    """An account whose counter disagrees with its active loans."""

    user_id: str
    recorded_active: int
    actual_active: int
    borrow_limit: int

    @property
    def over_limit(self) -> bool:
        return self.actual_active > self.borrow_limit


@dataclass
class ReconciliationReport:
    checked_at: datetime
    documents_checked: int = 0
    users_checked: int = 0
    documents: List[DocumentDiscrepancy] = field(default_factory=list)
    users: List[UserDiscrepancy] = field(default_factory=list)
    orphan_loans: List[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (self.documents or self.users or self.orphan_loans)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["is_consistent"] = self.is_consistent
        return data

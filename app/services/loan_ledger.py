"""
app/services/loan_ledger.py

Purpose: Borrow/return lifecycle

- Keeps document availability, the user's active-loan counter and loan
  status consistent across three collections
- Writes are ordered without a transaction (borrow: user, document, loan;
  return: document, loan, user); a failure part-way is reported as an
  unknown state and left to reconciliation
- Refusals come back as LedgerOutcome values; store failures raise
- Never retries
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from app.core.exceptions import StoreUnavailableError, LedgerInvariantError
from app.core.logging import get_logger, LogContext
from app.db.store import LibraryStore, StoreError, ASCENDING, DESCENDING
from app.models.document import Availability, Document
from app.models.ledger import (
    LedgerError,
    LedgerOutcome,
    LibraryStats,
    ReconciliationReport,
    DocumentDiscrepancy,
    UserDiscrepancy,
)
from app.models.loan import Loan, LoanStatus, new_loan_record
from app.models.user import User

logger = get_logger(__name__)

DEFAULT_LOAN_PERIOD = timedelta(days=30)

STEP_DOCUMENT = "document"
STEP_LOAN = "loan"
STEP_USER = "user"


class LoanLedger:
    """
    Borrow, return and maintenance queries over an injected LibraryStore.

    The store's lifecycle belongs to the caller; the ledger only issues reads
    and writes through it.
    """

    def __init__(
        self,
        store: LibraryStore,
        loan_period: timedelta = DEFAULT_LOAN_PERIOD,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.loan_period = loan_period
        self.clock = clock

    def _store_failure(self, operation: str, applied: List[str], error: Exception) -> StoreUnavailableError:
        state = "unknown" if applied else "failed"
        logger.error(
            f"Store failure during {operation} (state={state}, applied={applied}): {error}"
        )
        return StoreUnavailableError(
            message=f"Store unavailable during {operation}",
            state=state,
            applied_steps=applied,
        )

    # ------------------------------------------------------------------
    # Borrow / Return
    # ------------------------------------------------------------------

    async def borrow(self, document_id: str, user_id: str) -> LedgerOutcome:
        """
        Lends a document to a user.

        Checks, first failure wins: the user exists, the user is below the
        borrow limit, the document exists and is available.

        Writes run in the order user, document, loan. The user's slot is
        reserved with an increment conditioned on the limit, so concurrent
        borrows by one user never push the counter past it. A refused
        document claim gives the slot back.

        Returns:
            Success outcome carrying ``due_at`` and ``loan_id``, or a refusal

        Raises:
            StoreUnavailableError: the store failed; ``state`` tells whether
                anything was written
        """
        with LogContext(user_id=user_id, document_id=document_id, operation="borrow"):
            applied: List[str] = []
            try:
                user_record = await self.store.users.find_by_id(user_id)
                if user_record is None:
                    logger.info("Borrow refused: unknown user")
                    return LedgerOutcome.failure(LedgerError.USER_NOT_FOUND)

                user = User.from_record(user_record)
                reserved = user.can_borrow and await self.store.users.update_where(
                    user_id,
                    {"active_borrow_count": {"$lt": user.borrow_limit}},
                    inc_fields={"active_borrow_count": 1},
                )
                if not reserved:
                    logger.info(f"Borrow refused: limit of {user.borrow_limit} reached")
                    return LedgerOutcome.failure(
                        LedgerError.BORROW_LIMIT_EXCEEDED, limit=user.borrow_limit
                    )
                applied.append(STEP_USER)

                document_record = await self.store.documents.find_by_id(document_id)
                now = self.clock()

                # Claim the document only if nobody else did since the read
                claimed = (
                    document_record is not None
                    and Document.from_record(document_record).is_available
                    and await self.store.documents.update_where(
                        document_id,
                        {"availability": Availability.AVAILABLE.value},
                        set_fields={
                            "availability": Availability.BORROWED.value,
                            "borrowed_by": user_id,
                            "borrowed_at": now,
                        },
                        inc_fields={"borrow_count": 1},
                    )
                )
                if not claimed:
                    await self._release_slot(user_id)
                    applied.remove(STEP_USER)
                    logger.info("Borrow refused: document not available")
                    return LedgerOutcome.failure(LedgerError.DOCUMENT_UNAVAILABLE)
                applied.append(STEP_DOCUMENT)

                loan = new_loan_record(
                    document_id=document_id,
                    user_id=user_id,
                    borrowed_at=now,
                    loan_period=self.loan_period,
                    document_title=document_record.get("title"),
                    user_email=user.email,
                )
                loan_id = await self.store.loans.insert(loan)
                applied.append(STEP_LOAN)

            except StoreError as e:
                raise self._store_failure("borrow", applied, e) from e

            logger.info(f"Document borrowed, due {loan['due_at'].isoformat()}", extra={"loan_id": loan_id})
            return LedgerOutcome.success(due_at=loan["due_at"], loan_id=loan_id)

    async def _release_slot(self, user_id: str) -> None:
        released = await self.store.users.update_where(
            user_id,
            {"active_borrow_count": {"$gt": 0}},
            inc_fields={"active_borrow_count": -1},
        )
        if not released:
            raise LedgerInvariantError(
                "Reserved borrow slot vanished before release",
                details={"user_id": user_id},
            )

    async def return_document(self, document_id: str, user_id: str) -> LedgerOutcome:
        """
        Closes the user's active loan on a document.

        Refused with NO_ACTIVE_LOAN when this user holds no active loan on
        the document, including when someone else is holding it and when the
        loan was already returned.

        Raises:
            StoreUnavailableError: the store failed part-way or up front
            LedgerInvariantError: the user's counter was already zero
        """
        with LogContext(user_id=user_id, document_id=document_id, operation="return"):
            applied: List[str] = []
            try:
                loan_record = await self.store.loans.find_one(
                    {
                        "document_id": document_id,
                        "user_id": user_id,
                        "status": LoanStatus.ACTIVE.value,
                    },
                    sort=[("borrowed_at", DESCENDING)],
                )
                if loan_record is None:
                    logger.info("Return refused: no active loan")
                    return LedgerOutcome.failure(LedgerError.NO_ACTIVE_LOAN)

                loan_id = loan_record["id"]
                now = self.clock()

                released = await self.store.documents.update_where(
                    document_id,
                    {"availability": Availability.BORROWED.value, "borrowed_by": user_id},
                    set_fields={
                        "availability": Availability.AVAILABLE.value,
                        "borrowed_by": None,
                        "borrowed_at": None,
                    },
                )
                if released:
                    applied.append(STEP_DOCUMENT)
                else:
                    logger.warning(
                        "Document was not marked as held by this user; availability left unchanged",
                        extra={"loan_id": loan_id},
                    )

                closed = await self.store.loans.update_where(
                    loan_id,
                    {"status": LoanStatus.ACTIVE.value},
                    set_fields={
                        "status": LoanStatus.RETURNED.value,
                        "returned_at": now,
                    },
                )
                if not closed:
                    # A concurrent return closed it first and owns the counter update
                    logger.info("Return refused: loan closed concurrently", extra={"loan_id": loan_id})
                    return LedgerOutcome.failure(LedgerError.NO_ACTIVE_LOAN)
                applied.append(STEP_LOAN)

                decremented = await self.store.users.update_where(
                    user_id,
                    {"active_borrow_count": {"$gt": 0}},
                    inc_fields={"active_borrow_count": -1},
                )
                if not decremented:
                    logger.error("Active loan closed but user counter was already zero", extra={"loan_id": loan_id})
                    raise LedgerInvariantError(
                        "Active borrow count would become negative",
                        details={"user_id": user_id, "loan_id": loan_id, "applied_steps": applied},
                    )
                applied.append(STEP_USER)

            except StoreError as e:
                raise self._store_failure("return", applied, e) from e

            logger.info("Document returned", extra={"loan_id": loan_id})
            return LedgerOutcome.success(loan_id=loan_id)

    # ------------------------------------------------------------------
    # Administrative override
    # ------------------------------------------------------------------

    async def toggle(self, document_id: str) -> LedgerOutcome:
        """
        Flips availability without opening or closing a loan.

        Legacy override: it bypasses loan and user bookkeeping and can leave a
        document borrowed with no loan, or available while a loan is active.
        Only reachable from an admin-gated route.
        """
        with LogContext(document_id=document_id, operation="toggle"):
            try:
                record = await self.store.documents.find_by_id(document_id)
                if record is None:
                    return LedgerOutcome.failure(LedgerError.DOCUMENT_NOT_FOUND)

                new_availability = Document.from_record(record).availability.flipped()
                fields = {"availability": new_availability.value}
                if new_availability is Availability.AVAILABLE:
                    # An available document names no holder
                    fields.update(borrowed_by=None, borrowed_at=None)
                await self.store.documents.update_fields(document_id, fields)
            except StoreError as e:
                raise self._store_failure("toggle", [], e) from e

            logger.warning(
                f"Availability overridden to {new_availability.value} without loan bookkeeping"
            )
            return LedgerOutcome.success(availability=new_availability)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def stats(self) -> LibraryStats:
        """
        Catalogue totals from a single pass over the documents collection.

        Borrows in flight may or may not be reflected.
        """
        try:
            documents = await self.store.documents.find_many()
        except StoreError as e:
            raise self._store_failure("stats", [], e) from e

        stats = LibraryStats()
        for record in documents:
            stats.total += 1
            if record.get("availability") == Availability.BORROWED.value:
                stats.borrowed += 1
            elif record.get("availability") == Availability.AVAILABLE.value:
                stats.available += 1
            stats.total_borrow_count += record.get("borrow_count") or 0
        return stats

    async def overdue_loans(self, as_of: Optional[datetime] = None) -> List[Loan]:
        """Active loans whose due date is strictly before ``as_of`` (default: now)."""
        as_of = as_of or self.clock()
        try:
            records = await self.store.loans.find_many(
                {"status": LoanStatus.ACTIVE.value, "due_at": {"$lt": as_of}},
                sort=[("due_at", ASCENDING)],
            )
        except StoreError as e:
            raise self._store_failure("overdue_loans", [], e) from e
        return [Loan.from_record(r) for r in records]

    async def active_loans(self, user_id: str) -> List[Loan]:
        """The user's current loans, most recently borrowed first."""
        try:
            records = await self.store.loans.find_many(
                {"user_id": user_id, "status": LoanStatus.ACTIVE.value},
                sort=[("borrowed_at", DESCENDING)],
            )
        except StoreError as e:
            raise self._store_failure("active_loans", [], e) from e
        return [Loan.from_record(r) for r in records]

    async def reconcile(self) -> ReconciliationReport:
        """
        Cross-checks documents and users against active loans.

        Read-only. Reports documents whose availability disagrees with the
        number of active loans on them, users whose counter disagrees with
        theirs, and active loans pointing at unknown documents.
        """
        report = ReconciliationReport(checked_at=self.clock())
        try:
            active = await self.store.loans.find_many({"status": LoanStatus.ACTIVE.value})
            documents = await self.store.documents.find_many()
            users = await self.store.users.find_many(exclude=("password_hash",))
        except StoreError as e:
            raise self._store_failure("reconcile", [], e) from e

        per_document = Counter(loan["document_id"] for loan in active)
        per_user = Counter(loan["user_id"] for loan in active)

        known_documents = set()
        for record in documents:
            known_documents.add(record["id"])
            active_count = per_document.get(record["id"], 0)
            borrowed = record.get("availability") == Availability.BORROWED.value
            if (borrowed and active_count != 1) or (not borrowed and active_count > 0):
                report.documents.append(
                    DocumentDiscrepancy(
                        document_id=record["id"],
                        availability=record.get("availability"),
                        active_loans=active_count,
                    )
                )
        report.documents_checked = len(documents)

        for record in users:
            recorded = record.get("active_borrow_count") or 0
            actual = per_user.get(record["id"], 0)
            if recorded != actual:
                report.users.append(
                    UserDiscrepancy(
                        user_id=record["id"],
                        recorded_active=recorded,
                        actual_active=actual,
                        borrow_limit=record.get("borrow_limit") or 0,
                    )
                )
        report.users_checked = len(users)

        report.orphan_loans = [
            loan["id"] for loan in active if loan["document_id"] not in known_documents
        ]

        if report.is_consistent:
            logger.info("Reconciliation found no discrepancies")
        else:
            logger.warning(
                f"Reconciliation found {len(report.documents)} document and "
                f"{len(report.users)} user discrepancies, "
                f"{len(report.orphan_loans)} orphan loans"
            )
        return report

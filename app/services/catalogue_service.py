"""
app/services/catalogue_service.py

Purpose: Catalogue management

- Document listing
- Administrative document creation
- Admin dashboard counters
- Sample catalogue for empty databases
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.db.store import LibraryStore, ASCENDING
from app.models.document import Availability, Document, new_document_record
from app.models.loan import LoanStatus
from utils.constants import MISSING_DOCUMENT_FIELDS_MESSAGE, SAMPLE_DOCUMENTS
from utils.validation_utils import sanitize_input, is_valid_year

logger = get_logger(__name__)


class CatalogueService:
    """Service for catalogue reads and administrative additions."""

    def __init__(self, store: LibraryStore, clock: Callable[[], datetime] = datetime.utcnow):
        self.store = store
        self.clock = clock

    async def list_documents(self) -> List[Document]:
        records = await self.store.documents.find_many(sort=[("title", ASCENDING)])
        return [Document.from_record(r) for r in records]

    async def add_document(
        self,
        title: Optional[str],
        author: Optional[str],
        document_type: Optional[str] = None,
        year: Optional[int] = None,
    ) -> str:
        """
        Catalogues a new, available document.

        Args:
            title: Required
            author: Required
            document_type: Defaults to "Livre"
            year: Defaults to the current year

        Returns:
            New document ID

        Raises:
            ValidationError: title or author missing, or implausible year
        """
        title = sanitize_input(title, max_length=300)
        author = sanitize_input(author, max_length=200)
        if not title or not author:
            raise ValidationError(MISSING_DOCUMENT_FIELDS_MESSAGE)
        if year is not None and not is_valid_year(year):
            raise ValidationError(f"Année invalide: {year}")

        record = new_document_record(
            title=title,
            author=author,
            document_type=sanitize_input(document_type, max_length=100) or None,
            year=year,
            added_at=self.clock(),
        )
        document_id = await self.store.documents.insert(record)

        logger.info(f"Document catalogued: {title}", extra={"document_id": document_id})
        return document_id

    async def dashboard(self, as_of: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Counters for the admin dashboard.

        Each counter is its own query; figures may straddle a concurrent borrow.
        """
        as_of = as_of or self.clock()
        active = {"status": LoanStatus.ACTIVE.value}

        return {
            "total_documents": await self.store.documents.count(),
            "available_documents": await self.store.documents.count(
                {"availability": Availability.AVAILABLE.value}
            ),
            "total_users": await self.store.users.count(),
            "active_loans": await self.store.loans.count(active),
            "overdue_loans": await self.store.loans.count({**active, "due_at": {"$lt": as_of}}),
            "total_borrow_count": await self.store.documents.sum("borrow_count"),
        }

    async def seed_sample_documents(self) -> int:
        """
        Inserts the sample catalogue when no document exists yet.

        Returns:
            Number of documents inserted
        """
        if await self.store.documents.count() > 0:
            return 0

        now = self.clock()
        for sample in SAMPLE_DOCUMENTS:
            await self.store.documents.insert(new_document_record(added_at=now, **sample))

        logger.info(f"📚 {len(SAMPLE_DOCUMENTS)} sample documents inserted")
        return len(SAMPLE_DOCUMENTS)

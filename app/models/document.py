"""
app/models/document.py

Purpose: Catalogue document model

- Bibliographic fields (title, author, type, year)
- Single availability enum (available / borrowed)
- Current holder and borrow timestamp
- Historical borrow counter
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class Availability(str, Enum):
    """Whether a document can currently be borrowed."""

    AVAILABLE = "available"
    BORROWED = "borrowed"

    def flipped(self) -> "Availability":
        if self is Availability.AVAILABLE:
            return Availability.BORROWED
        return Availability.AVAILABLE


class Document(BaseModel):
    """
    A catalogue entry.

    ``borrow_count`` counts every borrow ever made and is never decremented.
    """

    id: str
    title: str
    author: str
    document_type: str = "Livre"
    year: Optional[int] = None
    availability: Availability = Availability.AVAILABLE
    borrowed_by: Optional[str] = None
    borrowed_at: Optional[datetime] = None
    borrow_count: int = Field(default=0, ge=0)
    added_at: Optional[datetime] = None

    @property
    def is_available(self) -> bool:
        return self.availability is Availability.AVAILABLE

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Document":
        return cls(**record)


def new_document_record(
    title: str,
    author: str,
    document_type: Optional[str] = None,
    year: Optional[int] = None,
    added_at: Optional[datetime] = None,
    borrow_count: int = 0,
) -> Dict[str, Any]:
    """Builds the stored form of a freshly catalogued, available document."""
    added_at = added_at or datetime.utcnow()
    return {
        "title": title,
        "author": author,
        "document_type": document_type or "Livre",
        "year": year or added_at.year,
        "availability": Availability.AVAILABLE.value,
        "borrowed_by": None,
        "borrowed_at": None,
        "borrow_count": borrow_count,
        "added_at": added_at,
    }

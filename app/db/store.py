"""
app/db/store.py

Purpose: Persistent store contract

- Per-collection operations used by the loan ledger and services
- Mongo-style filter documents (equality, $lt, $lte, $gt, $gte, $ne, $in)
- Records are plain dicts with a string "id"
- Any backend failure surfaces as StoreError
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

Record = Dict[str, Any]
Filter = Dict[str, Any]
Sort = Sequence[Tuple[str, int]]

ASCENDING = 1
DESCENDING = -1

DOCUMENTS = "documents"
USERS = "users"
LOANS = "loans"
SESSIONS = "sessions"


class StoreError(Exception):
    """Raised when the backing store cannot complete a call (timeout, connection loss)."""


class DuplicateRecordError(StoreError):
    """Raised when an insert violates a unique index."""


class CollectionStore(ABC):
    """
    Operations on one entity collection.

    Implementations never retry; a failed call raises StoreError and the
    caller decides what to do.
    """

    name: str

    @abstractmethod
    async def find_by_id(self, record_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    async def find_one(self, filter: Filter, sort: Optional[Sort] = None) -> Optional[Record]:
        ...

    @abstractmethod
    async def find_many(
        self,
        filter: Optional[Filter] = None,
        sort: Optional[Sort] = None,
        limit: int = 0,
        exclude: Sequence[str] = (),
    ) -> List[Record]:
        ...

    @abstractmethod
    async def insert(self, record: Record) -> str:
        """Inserts a record and returns its new id."""

    @abstractmethod
    async def update_fields(self, record_id: str, fields: Record) -> bool:
        """Sets the given fields. Returns False when no record has this id."""

    @abstractmethod
    async def update_where(
        self,
        record_id: str,
        condition: Filter,
        set_fields: Optional[Record] = None,
        inc_fields: Optional[Dict[str, int]] = None,
    ) -> bool:
        """
        Conditional write: applies ``set_fields`` and ``inc_fields`` only if
        the record with ``record_id`` also matches ``condition``, as a single
        atomic step. Returns True when the write was applied.
        """

    @abstractmethod
    async def increment(self, record_id: str, field: str, delta: int) -> bool:
        ...

    @abstractmethod
    async def delete_where(self, filter: Filter) -> int:
        ...

    @abstractmethod
    async def count(self, filter: Optional[Filter] = None) -> int:
        ...

    @abstractmethod
    async def sum(self, field: str, filter: Optional[Filter] = None) -> int:
        ...


class LibraryStore(ABC):
    """
    Bundles the collections of the catalogue and owns the connection lifecycle.

    Constructed by the hosting process and handed to the ledger and services;
    individual operations never open or close connections.
    """

    documents: CollectionStore
    users: CollectionStore
    loans: CollectionStore
    sessions: CollectionStore

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def create_indexes(self) -> None:
        """Backends without index support have nothing to do."""
        return None

    def collection(self, name: str) -> CollectionStore:
        return {
            DOCUMENTS: self.documents,
            USERS: self.users,
            LOANS: self.loans,
            SESSIONS: self.sessions,
        }[name]


def create_store(backend: str) -> LibraryStore:
    """
    Builds the store selected by configuration.

    Args:
        backend: "mongo" or "memory"

    Returns:
        An unconnected LibraryStore
    """
    if backend == "memory":
        from app.db.memory import InMemoryLibraryStore
        return InMemoryLibraryStore()
    if backend == "mongo":
        from app.db.mongo import MongoLibraryStore
        return MongoLibraryStore()
    raise ValueError(f"Unknown store backend: {backend}")

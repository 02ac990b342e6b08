"""
app/db/memory.py

Purpose: In-process store

- Same contract as the Mongo store, kept in dicts
- Used for local development (STORE_BACKEND=memory) and the test suite
- Every conditional write runs without yielding to the event loop,
  so it is atomic with respect to other coroutines
"""

import copy
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from bson import ObjectId

from app.db.store import (
    CollectionStore,
    DuplicateRecordError,
    LibraryStore,
    Record,
    Filter,
    Sort,
    DOCUMENTS,
    USERS,
    LOANS,
    SESSIONS,
)
from app.core.logging import get_logger

logger = get_logger(__name__)

_MISSING = object()


def _compare(op: str, value: Any, operand: Any) -> bool:
    if op == "$exists":
        return (value is not _MISSING) == bool(operand)
    # A missing field compares like null for the equality operators
    present = None if value is _MISSING else value
    if op == "$ne":
        return present != operand
    if op == "$in":
        return present in operand
    if op == "$nin":
        return present not in operand
    if present is None or operand is None:
        return False
    if op == "$lt":
        return present < operand
    if op == "$lte":
        return present <= operand
    if op == "$gt":
        return present > operand
    if op == "$gte":
        return present >= operand
    raise ValueError(f"Unsupported filter operator: {op}")


def matches(record: Record, filter: Optional[Filter]) -> bool:
    """Evaluates a Mongo-style filter document against a record."""
    if not filter:
        return True

    for key, condition in filter.items():
        value = record.get(key, _MISSING)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            for op, operand in condition.items():
                if not _compare(op, value, operand):
                    return False
        else:
            if value is _MISSING:
                value = None
            if value != condition:
                return False
    return True


def _sort_key(field: str):
    # None sorts first ascending, like Mongo
    def key(record: Record):
        value = record.get(field)
        return (value is not None, value if value is not None else 0)
    return key


class InMemoryCollectionStore(CollectionStore):
    """
    Dict-backed collection.

    ``unique_fields`` mirrors the unique indexes of the Mongo collection.
    """

    def __init__(self, name: str, unique_fields: Sequence[str] = ()):
        self.name = name
        self.unique_fields = tuple(unique_fields)
        self._records: Dict[str, Record] = {}

    def _copy(self, record: Record, exclude: Sequence[str] = ()) -> Record:
        result = copy.deepcopy(record)
        for field in exclude:
            result.pop(field, None)
        return result

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        record = self._records.get(str(record_id))
        return self._copy(record) if record is not None else None

    async def find_one(self, filter: Filter, sort: Optional[Sort] = None) -> Optional[Record]:
        found = await self.find_many(filter, sort=sort, limit=1)
        return found[0] if found else None

    async def find_many(
        self,
        filter: Optional[Filter] = None,
        sort: Optional[Sort] = None,
        limit: int = 0,
        exclude: Sequence[str] = (),
    ) -> List[Record]:
        selected = [r for r in self._records.values() if matches(r, filter)]
        # Apply sort keys from least to most significant
        for field, direction in reversed(list(sort or [])):
            selected.sort(key=_sort_key(field), reverse=direction < 0)
        if limit:
            selected = selected[:limit]
        return [self._copy(r, exclude) for r in selected]

    async def insert(self, record: Record) -> str:
        record_id = str(record.get("id") or ObjectId())
        if record_id in self._records:
            raise DuplicateRecordError(f"{self.name}.insert rejected duplicate id: {record_id}")
        for field in self.unique_fields:
            value = record.get(field)
            if value is not None and any(r.get(field) == value for r in self._records.values()):
                raise DuplicateRecordError(f"{self.name}.insert rejected duplicate {field}: {value}")
        stored = copy.deepcopy(record)
        stored["id"] = record_id
        self._records[record_id] = stored
        return record_id

    async def update_fields(self, record_id: str, fields: Record) -> bool:
        record = self._records.get(str(record_id))
        if record is None:
            return False
        record.update(copy.deepcopy(fields))
        return True

    async def update_where(
        self,
        record_id: str,
        condition: Filter,
        set_fields: Optional[Record] = None,
        inc_fields: Optional[Dict[str, int]] = None,
    ) -> bool:
        record = self._records.get(str(record_id))
        if record is None or not matches(record, condition):
            return False
        record.update(copy.deepcopy(set_fields or {}))
        for field, delta in (inc_fields or {}).items():
            record[field] = (record.get(field) or 0) + delta
        return True

    async def increment(self, record_id: str, field: str, delta: int) -> bool:
        return await self.update_where(record_id, {}, inc_fields={field: delta})

    async def delete_where(self, filter: Filter) -> int:
        doomed = [rid for rid, r in self._records.items() if matches(r, filter)]
        for rid in doomed:
            del self._records[rid]
        return len(doomed)

    async def count(self, filter: Optional[Filter] = None) -> int:
        return sum(1 for r in self._records.values() if matches(r, filter))

    async def sum(self, field: str, filter: Optional[Filter] = None) -> int:
        return sum(
            r.get(field) or 0
            for r in self._records.values()
            if matches(r, filter)
        )


class InMemoryLibraryStore(LibraryStore):
    """All four collections held in process memory."""

    def __init__(self):
        self.documents = InMemoryCollectionStore(DOCUMENTS)
        self.users = InMemoryCollectionStore(USERS, unique_fields=("email",))
        self.loans = InMemoryCollectionStore(LOANS)
        self.sessions = InMemoryCollectionStore(SESSIONS, unique_fields=("session_id",))
        self.connected_at: Optional[datetime] = None

    async def connect(self) -> None:
        self.connected_at = datetime.utcnow()
        logger.info("Using in-memory store")

    async def close(self) -> None:
        self.connected_at = None
        logger.info("In-memory store closed")

    async def ping(self) -> bool:
        return self.connected_at is not None

from datetime import datetime

import pytest

from app.db.memory import InMemoryCollectionStore, InMemoryLibraryStore, matches
from app.db.store import DESCENDING, DuplicateRecordError, create_store, LibraryStore
from conftest import run


def test_filter_operators():
    record = {"status": "active", "due_at": datetime(2024, 1, 1), "count": 2, "note": None}

    assert matches(record, {"status": "active"})
    assert matches(record, {"due_at": {"$lt": datetime(2024, 1, 2)}})
    assert not matches(record, {"due_at": {"$lt": datetime(2024, 1, 1)}})
    assert matches(record, {"count": {"$gt": 0, "$lte": 2}})
    assert matches(record, {"status": {"$in": ["active", "returned"]}})
    assert matches(record, {"missing": None})
    assert matches(record, {"status": {"$ne": "returned"}})
    # range operators never match null
    assert not matches(record, {"note": {"$lt": 5}})


def test_update_where_is_conditional():
    collection = InMemoryCollectionStore("documents")
    doc_id = run(collection.insert({"availability": "available", "borrow_count": 0}))

    first = run(collection.update_where(
        doc_id, {"availability": "available"},
        set_fields={"availability": "borrowed"}, inc_fields={"borrow_count": 1},
    ))
    second = run(collection.update_where(
        doc_id, {"availability": "available"},
        set_fields={"availability": "borrowed"}, inc_fields={"borrow_count": 1},
    ))

    assert first is True
    assert second is False
    assert run(collection.find_by_id(doc_id))["borrow_count"] == 1


def test_returned_records_are_copies():
    collection = InMemoryCollectionStore("users")
    user_id = run(collection.insert({"name": "A", "active_borrow_count": 0}))

    record = run(collection.find_by_id(user_id))
    record["active_borrow_count"] = 99

    assert run(collection.find_by_id(user_id))["active_borrow_count"] == 0


def test_find_many_sort_limit_and_exclude():
    collection = InMemoryCollectionStore("users")
    for name, created in (("b", 2), ("a", 1), ("c", 3)):
        run(collection.insert({"name": name, "created": created, "password_hash": "x"}))

    records = run(collection.find_many(sort=[("created", DESCENDING)], limit=2, exclude=("password_hash",)))

    assert [r["name"] for r in records] == ["c", "b"]
    assert all("password_hash" not in r for r in records)


def test_count_and_sum():
    collection = InMemoryCollectionStore("documents")
    run(collection.insert({"availability": "available", "borrow_count": 3}))
    run(collection.insert({"availability": "borrowed", "borrow_count": 4}))
    run(collection.insert({"availability": "available"}))

    assert run(collection.count()) == 3
    assert run(collection.count({"availability": "available"})) == 2
    assert run(collection.sum("borrow_count")) == 7
    assert run(collection.sum("borrow_count", {"availability": "borrowed"})) == 4


def test_create_store_backends():
    store = create_store("memory")

    assert isinstance(store, LibraryStore)
    assert run(store.ping()) is False
    run(store.connect())
    assert run(store.ping()) is True


def test_increment_counts_and_reports_missing_records():
    collection = InMemoryCollectionStore("documents")
    doc_id = run(collection.insert({"borrow_count": 2}))

    assert run(collection.increment(doc_id, "borrow_count", 3)) is True
    assert run(collection.increment("missing", "borrow_count", 1)) is False
    assert run(collection.find_by_id(doc_id))["borrow_count"] == 5


def test_duplicate_id_is_rejected():
    collection = InMemoryCollectionStore("loans")
    loan_id = run(collection.insert({"status": "active"}))

    with pytest.raises(DuplicateRecordError):
        run(collection.insert({"id": loan_id, "status": "active"}))


def test_user_emails_are_unique():
    store = InMemoryLibraryStore()
    run(store.users.insert({"email": "a@test.fr"}))

    with pytest.raises(DuplicateRecordError):
        run(store.users.insert({"email": "a@test.fr"}))
    # other collections carry no email index
    run(store.documents.insert({"email": "a@test.fr"}))
    run(store.documents.insert({"email": "a@test.fr"}))
    assert run(store.documents.count()) == 2

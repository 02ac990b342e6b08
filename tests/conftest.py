import asyncio
import os
from datetime import datetime, timedelta

import pytest

# Settings are read at import time
os.environ["STORE_BACKEND"] = "memory"
os.environ["ENVIRONMENT"] = "development"
os.environ["SEED_DEFAULT_DATA"] = "true"

from app.db.memory import InMemoryLibraryStore
from app.models.document import Availability, new_document_record
from app.models.user import Role, new_user_record
from app.services.account_service import hash_password
from app.services.loan_ledger import LoanLedger


def run(coro):
    return asyncio.run(coro)


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 10, 12, 0, 0))


@pytest.fixture
def store():
    store = InMemoryLibraryStore()
    run(store.connect())
    return store


@pytest.fixture
def ledger(store, clock):
    return LoanLedger(store, loan_period=timedelta(days=30), clock=clock)


def add_user(store, email="reader@test.fr", borrow_limit=3, role=Role.USER):
    record = new_user_record(
        name=email.split("@")[0],
        email=email,
        password_hash=hash_password("secret"),
        borrow_limit=borrow_limit,
        role=role,
    )
    return run(store.users.insert(record))


def add_document(store, title="Le Petit Prince", availability=Availability.AVAILABLE, borrow_count=0):
    record = new_document_record(title=title, author="Auteur", borrow_count=borrow_count)
    record["availability"] = availability.value
    return run(store.documents.insert(record))

import pytest

from app.core.exceptions import ConflictError
from app.services.account_service import AccountService
from conftest import run, add_user


def test_register_rejects_an_email_taken_concurrently(store, monkeypatch):
    add_user(store, email="taken@test.fr")
    accounts = AccountService(store, default_borrow_limit=3, min_password_length=3)

    # the lookup misses, the unique email index still refuses the insert
    async def nobody(*args, **kwargs):
        return None

    monkeypatch.setattr(store.users, "find_one", nobody)

    with pytest.raises(ConflictError):
        run(accounts.register("Other", "taken@test.fr", "secret"))
    assert run(store.users.count()) == 1


def test_session_resolves_until_it_expires(store, clock):
    user_id = add_user(store)
    accounts = AccountService(
        store, default_borrow_limit=3, min_password_length=3,
        session_timeout_minutes=60, clock=clock,
    )
    session_id, user = run(accounts.login("reader@test.fr", "secret"))

    assert user.id == user_id
    assert run(accounts.resolve_session(session_id))["user_id"] == user_id

    clock.advance(minutes=61)

    assert run(accounts.resolve_session(session_id)) is None
    assert run(store.sessions.count()) == 0

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app

API = settings.API_PREFIX


@pytest.fixture
def client():
    # Each context runs the lifespan: fresh in-memory store, seeded
    with TestClient(app) as client:
        yield client


def login(client, email=None, password=None):
    response = client.post(f"{API}/auth/login", json={
        "email": email or settings.DEFAULT_USER_EMAIL,
        "password": password or settings.DEFAULT_USER_PASSWORD,
    })
    assert response.status_code == 200, response.text
    return response.json()["user"]


def login_admin(client):
    return login(client, settings.DEFAULT_ADMIN_EMAIL, settings.DEFAULT_ADMIN_PASSWORD)


def document_ids(client):
    documents = client.get(f"{API}/documents").json()["documents"]
    return {doc["title"]: doc["id"] for doc in documents}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["checks"]["database"] == "healthy"
    assert client.get("/ready").json() == {"status": "ready"}
    assert client.get("/live").json() == {"status": "alive"}


def test_seeded_catalogue_is_listed(client):
    response = client.get(f"{API}/documents")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["count"] == 5
    assert all(doc["availability"] == "available" for doc in data["documents"])
    assert "Le Petit Prince" in {doc["title"] for doc in data["documents"]}


def test_register_login_and_profile(client):
    response = client.post(f"{API}/auth/register", json={
        "name": "Jeanne", "email": "Jeanne@Example.fr", "password": "secret",
    })
    assert response.status_code == 200
    assert response.json()["success"] is True

    user = login(client, "jeanne@example.fr", "secret")
    assert user["borrow_limit"] == settings.DEFAULT_BORROW_LIMIT
    assert user["active_borrow_count"] == 0
    assert "password_hash" not in user

    me = client.get(f"{API}/auth/me").json()["user"]
    assert me["email"] == "jeanne@example.fr"
    assert me["role"] == "user"


@pytest.mark.parametrize("payload, message", [
    ({"name": "A", "email": "a@test.fr"}, "Tous les champs sont requis"),
    ({"name": "A", "email": "a@test.fr", "password": "12"}, "Mot de passe trop court"),
    ({"name": "A", "email": "user@test.fr", "password": "secret"}, "Email déjà utilisé"),
])
def test_register_rejections(client, payload, message):
    response = client.post(f"{API}/auth/register", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == message
    assert response.json()["success"] is False


def test_login_with_wrong_password(client):
    response = client.post(f"{API}/auth/login", json={
        "email": settings.DEFAULT_USER_EMAIL, "password": "nope",
    })

    assert response.status_code == 401
    assert response.json()["error"] == "Email ou mot de passe incorrect"


def test_logout_ends_session(client):
    login(client)
    assert client.get(f"{API}/auth/me").status_code == 200

    assert client.post(f"{API}/auth/logout").json()["success"] is True

    assert client.get(f"{API}/auth/me").status_code == 401


def test_expired_session_is_rejected(client):
    login(client)
    sessions = client.app.state.store.sessions
    for session in client.portal.call(sessions.find_many):
        client.portal.call(
            sessions.update_fields, session["id"],
            {"expires_at": datetime.utcnow() - timedelta(minutes=1)},
        )

    response = client.get(f"{API}/auth/me")

    assert response.status_code == 401
    assert response.json()["error"] == "Veuillez vous connecter"


def test_borrow_requires_login(client):
    doc_id = document_ids(client)["1984"]

    response = client.post(f"{API}/documents/{doc_id}/borrow")

    assert response.status_code == 401


def test_borrow_and_return_flow(client):
    login(client)
    doc_id = document_ids(client)["1984"]
    before = client.get(f"{API}/stats").json()["stats"]

    response = client.post(f"{API}/documents/{doc_id}/borrow")

    assert response.status_code == 200
    data = response.json()
    due_at = datetime.fromisoformat(data["due_at"])
    assert data["message"] == f"Document emprunté. Retour avant le {due_at.strftime('%d/%m/%Y')}"
    assert abs((due_at - datetime.utcnow()) - timedelta(days=30)) < timedelta(minutes=1)

    after = client.get(f"{API}/stats").json()["stats"]
    assert after["available"] == before["available"] - 1
    assert after["borrowed"] == before["borrowed"] + 1
    assert after["total_borrow_count"] == before["total_borrow_count"] + 1

    loans = client.get(f"{API}/users/me/loans").json()
    assert loans["count"] == 1
    assert loans["loans"][0]["document_id"] == doc_id
    assert client.get(f"{API}/auth/me").json()["user"]["active_borrow_count"] == 1

    response = client.post(f"{API}/documents/{doc_id}/return")
    assert response.status_code == 200
    assert response.json()["message"] == "Document retourné avec succès"

    again = client.post(f"{API}/documents/{doc_id}/return")
    assert again.status_code == 400
    assert again.json()["code"] == "NO_ACTIVE_LOAN"
    assert client.get(f"{API}/auth/me").json()["user"]["active_borrow_count"] == 0


def test_borrow_limit_message(client):
    login(client)
    ids = list(document_ids(client).values())
    for doc_id in ids[:3]:
        assert client.post(f"{API}/documents/{doc_id}/borrow").status_code == 200

    response = client.post(f"{API}/documents/{ids[3]}/borrow")

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "BORROW_LIMIT_EXCEEDED"
    assert data["error"] == "Limite d'emprunts atteinte (3)"
    assert data["details"] == {"limit": 3}


def test_document_borrowed_by_someone_else(client):
    doc_id = document_ids(client)["1984"]
    login_admin(client)
    assert client.post(f"{API}/documents/{doc_id}/borrow").status_code == 200

    login(client)
    borrow = client.post(f"{API}/documents/{doc_id}/borrow")
    give_back = client.post(f"{API}/documents/{doc_id}/return")

    assert borrow.status_code == 400
    assert borrow.json()["error"] == "Document non disponible"
    assert give_back.status_code == 400
    assert give_back.json()["error"] == "Vous n'avez pas emprunté ce document"


def test_admin_routes_forbidden_for_users(client):
    assert client.get(f"{API}/admin/dashboard").status_code == 403

    login(client)
    response = client.get(f"{API}/admin/users")

    assert response.status_code == 403
    assert response.json()["error"] == "Accès administrateur requis"


def test_admin_dashboard_and_users(client):
    login_admin(client)

    dashboard = client.get(f"{API}/admin/dashboard").json()["dashboard"]
    assert dashboard["total_documents"] == 5
    assert dashboard["available_documents"] == 5
    assert dashboard["total_users"] == 2
    assert dashboard["active_loans"] == 0
    assert dashboard["overdue_loans"] == 0

    users = client.get(f"{API}/admin/users").json()["users"]
    assert {u["email"] for u in users} == {settings.DEFAULT_ADMIN_EMAIL, settings.DEFAULT_USER_EMAIL}
    admin = next(u for u in users if u["role"] == "admin")
    assert admin["borrow_limit"] == settings.ADMIN_BORROW_LIMIT
    assert all("password_hash" not in u for u in users)


def test_admin_adds_document(client):
    login_admin(client)

    missing = client.post(f"{API}/admin/documents", json={"title": "Sans auteur"})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Titre et auteur requis"

    response = client.post(f"{API}/admin/documents", json={"title": "Dune", "author": "Frank Herbert"})
    assert response.status_code == 200
    assert response.json()["message"] == "Document ajouté"

    added = [d for d in client.get(f"{API}/documents").json()["documents"] if d["title"] == "Dune"][0]
    assert added["id"] == response.json()["document_id"]
    assert added["document_type"] == "Livre"
    assert added["year"] == datetime.utcnow().year
    assert added["borrow_count"] == 0


def test_overdue_endpoint(client):
    login(client)
    doc_id = document_ids(client)["1984"]
    client.post(f"{API}/documents/{doc_id}/borrow")

    login_admin(client)
    now = client.get(f"{API}/admin/loans/overdue").json()
    later_at = (datetime.utcnow() + timedelta(days=31)).isoformat()
    later = client.get(f"{API}/admin/loans/overdue", params={"as_of": later_at}).json()

    assert now["count"] == 0
    assert later["count"] == 1
    assert later["loans"][0]["document_id"] == doc_id


def test_toggle_is_admin_only_and_shows_in_reconciliation(client):
    doc_id = document_ids(client)["1984"]

    login(client)
    assert client.post(f"{API}/admin/documents/{doc_id}/toggle").status_code == 403

    login_admin(client)
    assert client.get(f"{API}/admin/reconcile").json()["report"]["is_consistent"] is True

    response = client.post(f"{API}/admin/documents/{doc_id}/toggle")
    assert response.status_code == 200
    assert response.json()["availability"] == "borrowed"

    report = client.get(f"{API}/admin/reconcile").json()["report"]
    assert report["is_consistent"] is False
    assert report["documents"] == [{"document_id": doc_id, "availability": "borrowed", "active_loans": 0}]

    missing = client.post(f"{API}/admin/documents/000000000000000000000000/toggle")
    assert missing.status_code == 404
    assert missing.json()["code"] == "DOCUMENT_NOT_FOUND"


def test_toggle_can_be_disabled(client, monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_AVAILABILITY_OVERRIDE", False)
    login_admin(client)
    doc_id = document_ids(client)["1984"]

    response = client.post(f"{API}/admin/documents/{doc_id}/toggle")

    assert response.status_code == 403
    assert client.get(f"{API}/stats").json()["stats"]["borrowed"] == 0

from fastapi.testclient import TestClient
from app.main import app
import pytest

client = TestClient(app)

def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert "error" in data
    assert data["code"] == "HTTP_ERROR"

def test_validation_error_structure():
    from pydantic import BaseModel

    class Item(BaseModel):
        name: str
        price: int

    @app.post("/test-validation")
    def create_item(item: Item):
        return item

    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0

def test_custom_exception():
    from app.core.exceptions import ResourceNotFoundError

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ResourceNotFoundError(message="Item not found")

    response = client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"

def test_store_unavailable_carries_state(caplog):
    from app.core.exceptions import StoreUnavailableError

    @app.get("/test-store-error")
    def trigger_store_error():
        raise StoreUnavailableError(state="unknown", applied_steps=["document", "loan"])

    response = client.get("/test-store-error")
    assert response.status_code == 503
    data = response.json()
    assert data["code"] == "STORE_UNAVAILABLE"
    assert data["details"] == {"state": "unknown", "applied_steps": ["document", "loan"]}

    logged = [r for r in caplog.records if r.name == "mediatheque.errors"][-1]
    assert "state=unknown" in logged.getMessage()
    assert not hasattr(logged, "operation")

def test_raw_store_error_is_reported_as_failed():
    from app.db.store import StoreError

    @app.get("/test-raw-store-error")
    def trigger_raw_store_error():
        raise StoreError("server selection timeout")

    response = client.get("/test-raw-store-error")
    assert response.status_code == 503
    assert response.json()["details"]["state"] == "failed"

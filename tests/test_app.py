"""
Tests for the FastAPI hosting surface.

The registry dependency is overridden with one backed by a mocked
HTTP client, so no lifespan or network is involved.
"""

import pytest
from fastapi.testclient import TestClient

from crmbridge.app.dependencies import get_registry
from crmbridge.app.main import app
from crmbridge.registry import EndpointRegistry

from conftest import BASE_URL

ENDPOINT_ID = "contoso_crm_dynamics_com"


@pytest.fixture
def client(account_client):
    registry = EndpointRegistry(http_client=account_client)
    app.dependency_overrides[get_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


def _register(client):
    resp = client.post(
        "/api/v1/endpoints",
        json={"base_url": BASE_URL, "bearer_token": "tok"},
    )
    assert resp.status_code == 200
    return resp.json()


class TestApp:
    """Tests for the HTTP routes."""

    def test_root(self, client):
        resp = client.get("/")

        assert resp.status_code == 200
        assert resp.json()["status"] == "running"

    def test_health_before_registration(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["initialized"] is False
        assert data["total_tools"] == 0

    def test_register_and_list(self, client):
        data = _register(client)

        assert data["success"] is True
        assert data["endpoint_id"] == ENDPOINT_ID
        assert data["tool_count"] == 6

        listing = client.get("/api/v1/operations").json()
        assert listing["total_tools"] == 6
        assert listing["endpoints"][0]["record_types"][0]["record_type"] == "account"

    def test_operations_before_registration(self, client):
        data = client.get("/api/v1/operations").json()

        assert data["success"] is False
        assert data["error_type"] == "NotInitializedError"

    def test_execute(self, client):
        _register(client)

        resp = client.post(
            "/api/v1/operations/create_account/execute",
            json={"arguments": {"name": "Acme"}},
        )

        data = resp.json()
        assert data["success"] is True
        assert data["operation"] == "create_account"
        assert data["result"]["success"] is True

    def test_execute_unknown(self, client):
        _register(client)

        data = client.post("/api/v1/operations/read_contact/execute", json={}).json()

        assert data["success"] is False
        assert "not found" in data["message"]

    def test_register_rejects_bad_body(self, client):
        resp = client.post("/api/v1/endpoints", json={"base_url": BASE_URL})

        assert resp.status_code == 422

    def test_status_refresh_unregister(self, client):
        _register(client)

        status = client.get(f"/api/v1/endpoints/{ENDPOINT_ID}/status").json()
        assert status["tool_count"] == 6

        all_status = client.get("/api/v1/endpoints/status").json()
        assert all_status["total_tools"] == 6

        refreshed = client.post(f"/api/v1/endpoints/{ENDPOINT_ID}/refresh").json()
        assert refreshed["success"] is True
        assert refreshed["previous_tool_count"] == 6

        removed = client.delete(f"/api/v1/endpoints/{ENDPOINT_ID}").json()
        assert removed["removed_tools"] == 6

        assert client.get("/health").json()["initialized"] is False

    def test_record_types(self, client):
        _register(client)

        summary = client.get("/api/v1/record-types").json()
        assert summary["record_types"][0]["record_type"] == "account"

        detail = client.get("/api/v1/record-types/account").json()
        assert detail["supports_delete"] is True
        assert detail["search_fields"] == ["name"]

    def test_tools(self, client):
        _register(client)

        data = client.get("/api/v1/tools").json()

        assert data["total_tools"] == 6
        assert {t["name"] for t in data["tools"]} >= {"read_account", "search_account_by_name"}

    def test_initialize_without_connection_string(self, client):
        data = client.post("/api/v1/endpoints/initialize", json={}).json()

        assert data["success"] is False
        assert data["error_type"] == "ConfigurationError"

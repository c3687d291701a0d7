"""
Tests for the FastAPI application shell.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient


class TestRootEndpoint:
    """Tests for root endpoint."""

    def test_root_endpoint(self, api_client: TestClient):
        response = api_client.get("/")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "message": "RepoBook API is running",
            "version": "0.1.0",
        }


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_when_database_connected(self, api_client: TestClient):
        with patch("repobook.db.connection.check_connection", return_value=True):
            response = api_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"

    def test_health_when_database_disconnected(self, api_client: TestClient):
        with patch("repobook.db.connection.check_connection", return_value=False):
            response = api_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["database"] == "unhealthy"


class TestErrorShape:
    """Errors are always a JSON object with an ``error`` message."""

    def test_missing_auth(self, api_client: TestClient):
        response = api_client.get("/credits")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_malformed_auth_header(self, api_client: TestClient):
        response = api_client.get("/credits", headers={"Authorization": "Token x"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid authorization header format"

    def test_unknown_api_key(self, api_client: TestClient):
        response = api_client.get(
            "/credits", headers={"Authorization": "Bearer rb_live_nope"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid API key"


class TestAPIDocs:
    def test_openapi_lists_routes(self, api_client: TestClient):
        response = api_client.get("/openapi.json")

        assert response.status_code == 200
        paths = response.json()["paths"]
        for path in ("/documents", "/documents/advance", "/credits", "/interviews/token"):
            assert path in paths

"""Tests for app-level endpoints and configuration in agentsquare.api.main."""

from unittest.mock import MagicMock

from agentsquare.api.main import _parse_allowed_origins, app
from agentsquare.db.connection import get_session_factory


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert data["uptime_seconds"] >= 0

    def test_api_root(self, client):
        data = client.get("/api").json()
        assert data["name"] == "AgentSquare API"
        assert data["docs"] == "/docs"


class TestReadiness:
    def test_degraded_without_image_service(self, client):
        response = client.get("/readyz")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"] == {"status": "ok"}
        assert data["checks"]["image_generation"]["status"] == "degraded"
        assert data["checks"]["image_hosting"] == {"status": "disabled"}

    def test_ready_when_configured(self, client, configure_services):
        configure_services()
        data = client.get("/readyz").json()
        assert data["status"] == "ready"
        assert data["checks"]["image_generation"] == {"status": "configured"}
        assert data["checks"]["moderation"] == {"status": "configured"}
        assert data["checks"]["speech"] == {"status": "disabled"}

    def test_database_failure(self, client):
        broken = MagicMock()
        broken.return_value.execute.side_effect = RuntimeError("database is locked")
        app.dependency_overrides[get_session_factory] = lambda: broken

        response = client.get("/readyz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["database"]["status"] == "error"


class TestErrorShape:
    def test_malformed_body(self, client, make_agent):
        agent = make_agent()
        response = client.post(
            f"/api/v1/agents/{agent.id}/messages",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"


class TestAllowedOrigins:
    def test_unset(self, monkeypatch):
        monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
        assert _parse_allowed_origins() == []

    def test_parses_list(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:5173, https://square.example ,")
        assert _parse_allowed_origins() == ["http://localhost:5173", "https://square.example"]

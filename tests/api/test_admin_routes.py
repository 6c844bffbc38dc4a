"""Tests for /api/v1/admin endpoints."""

import httpx

from agentsquare.api.deps import get_polisher
from agentsquare.api.main import app
from agentsquare.db.models import Message
from agentsquare.services.agent_polish import AgentPolisher
from agentsquare.services.message_repository import MessageRepository


class TestLogin:
    def test_default_password(self, client):
        response = client.post("/api/v1/admin/login", json={"password": "admin123"})
        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["expiresAt"] > 0

        verify = client.get(
            "/api/v1/admin/verify", headers={"Authorization": f"Bearer {data['token']}"}
        )
        assert verify.status_code == 200
        assert verify.json() == {"valid": True}

    def test_wrong_password(self, client):
        response = client.post("/api/v1/admin/login", json={"password": "nope"})
        assert response.status_code == 401
        assert response.json()["error"] == {
            "code": "UNAUTHORIZED",
            "message": "Incorrect password.",
        }

    def test_rate_limited_after_repeated_failures(self, client):
        headers = {"X-Real-IP": "10.0.0.66"}
        for _ in range(10):
            client.post("/api/v1/admin/login", json={"password": "nope"}, headers=headers)

        response = client.post(
            "/api/v1/admin/login", json={"password": "admin123"}, headers=headers
        )
        assert response.status_code == 401
        assert "Too many" in response.json()["error"]["message"]

        other = client.post(
            "/api/v1/admin/login", json={"password": "admin123"}, headers={"X-Real-IP": "10.0.0.67"}
        )
        assert other.status_code == 200

    def test_verify_without_token(self, client):
        assert client.get("/api/v1/admin/verify").status_code == 401


def _seed(test_db, make_agent, make_user):
    agent = make_agent()
    other_agent = make_agent(name="Logo Smith")
    user = make_user(ip="10.0.0.20", nickname="Local user")
    repo = MessageRepository(test_db)
    turn = repo.append_user_turn(
        user_id=user.id, agent_id=agent.id, content="draw a red fox",
        reference_images=[], publish_to_square=False,
    )
    repo.append_agent_turn(
        user_id=user.id, agent_id=agent.id, content="A red fox",
        image_data="https://img.host/fox.png", generation_time=800,
        user_message_id=turn.id, publish_to_square=False,
    )
    repo.append_user_turn(
        user_id=user.id, agent_id=other_agent.id, content="a logo for a bakery",
        reference_images=["https://ref.test/bread.png"], publish_to_square=False,
    )
    test_db.commit()
    return agent, other_agent


class TestAdminMessages:
    def test_requires_admin(self, client):
        assert client.get("/api/v1/admin/messages").status_code == 401

    def test_list_newest_first(self, client, admin_headers, test_db, make_agent, make_user):
        _seed(test_db, make_agent, make_user)
        data = client.get("/api/v1/admin/messages", headers=admin_headers).json()
        assert data["total"] == 3
        assert data["page"] == 1
        assert data["pageSize"] == 20
        assert [m["content"] for m in data["items"]] == [
            "a logo for a bakery", "A red fox", "draw a red fox",
        ]
        assert data["items"][1]["sender"] == "agent"
        assert data["items"][1]["agentName"] == "Poster Artist"
        assert data["items"][0]["userIp"] == "10.0.0.20"

    def test_filters(self, client, admin_headers, test_db, make_agent, make_user):
        agent, _ = _seed(test_db, make_agent, make_user)

        by_agent = client.get(
            "/api/v1/admin/messages",
            params={"agentId": agent.id, "order": "asc"},
            headers=admin_headers,
        ).json()
        assert [m["content"] for m in by_agent["items"]] == ["draw a red fox", "A red fox"]

        by_keyword = client.get(
            "/api/v1/admin/messages", params={"keyword": "bakery"}, headers=admin_headers
        ).json()
        assert by_keyword["total"] == 1

        by_type = client.get(
            "/api/v1/admin/messages", params={"type": "image"}, headers=admin_headers
        ).json()
        assert [m["content"] for m in by_type["items"]] == ["a logo for a bakery", "A red fox"]

    def test_paging(self, client, admin_headers, test_db, make_agent, make_user):
        _seed(test_db, make_agent, make_user)
        data = client.get(
            "/api/v1/admin/messages", params={"page": 2, "pageSize": 2}, headers=admin_headers
        ).json()
        assert data["total"] == 3
        assert [m["content"] for m in data["items"]] == ["draw a red fox"]

    def test_delete(self, client, admin_headers, test_db, make_agent, make_user):
        _seed(test_db, make_agent, make_user)
        target = test_db.query(Message).filter(Message.content == "A red fox").one()

        response = client.delete(f"/api/v1/admin/messages/{target.id}", headers=admin_headers)

        assert response.status_code == 204
        assert test_db.query(Message).count() == 2

    def test_delete_missing(self, client, admin_headers):
        response = client.delete("/api/v1/admin/messages/missing", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Message not found."


class TestPolish:
    def test_requires_system_prompt(self, client, admin_headers):
        response = client.post(
            "/api/v1/admin/agents/polish", json={"systemPrompt": " "}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_not_configured(self, client, admin_headers):
        response = client.post(
            "/api/v1/admin/agents/polish",
            json={"systemPrompt": "You draw posters."},
            headers=admin_headers,
        )
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "CONFIG_MISSING"

    def test_polished_copy(self, client, admin_headers, configure_services):
        configure_services()

        def handler(request: httpx.Request) -> httpx.Response:
            content = (
                '{"name": "Poster Pro", "description": "Bold posters.", '
                '"skills": "Layout", "policyPrompt": "No logos"}'
            )
            return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

        app.dependency_overrides[get_polisher] = lambda: AgentPolisher(httpx.MockTransport(handler))
        response = client.post(
            "/api/v1/admin/agents/polish",
            json={
                "systemPrompt": "You draw posters.",
                "name": "Poster Artist",
                "description": "Makes posters",
                "skills": "",
                "policyPrompt": "no logos",
            },
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json() == {
            "name": "Poster Pro",
            "description": "Bold posters.",
            "skills": "",
            "policyPrompt": "No logos",
        }

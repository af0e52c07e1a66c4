"""
Tests for the FastAPI application and the messages API.

The chat service is overridden with an in-memory store and a scripted
provider; no network access is needed.
"""

import pytest
from fastapi.testclient import TestClient

from sitepilot.agent import PROCESSING_ERROR, ChatService, InMemoryTrajectoryStore
from sitepilot.app.dependencies import get_chat_service
from sitepilot.app.main import app
from sitepilot.messages import Message
from sitepilot.providers import ProviderRegistry
from sitepilot.tools import StaticToolFactory


@pytest.fixture
def provider(scripted_provider):
    return scripted_provider()


@pytest.fixture
def client(provider, recording_tool):
    registry = ProviderRegistry(preferred_models={"openai": ""})
    registry.register("openai", provider)
    service = ChatService(
        store=InMemoryTrajectoryStore(),
        registry=registry,
        tool_factory=StaticToolFactory([recording_tool(payload={"post_title": "Hello"})]),
    )
    app.dependency_overrides[get_chat_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def user_body(text="Summarize post 0"):
    return {"role": "user", "parts": [{"type": "text", "text": text}]}


class TestMessagesApi:
    """Tests for /api/v1/messages."""

    def test_empty_conversation(self, client):
        response = client.get("/api/v1/messages")

        assert response.status_code == 200
        assert response.json() == []

    def test_send_message(self, client, provider, make_call_message):
        provider.queue(make_call_message("sitepilot_get_post"), Message.model_text("It is Hello."))

        response = client.post("/api/v1/messages", json=user_body(), headers={"X-User-Id": "7"})

        assert response.status_code == 200
        reply = response.json()
        assert reply["type"] == "regular"
        assert reply["role"] == "model"
        assert reply["parts"][0]["text"] == "It is Hello."

        stored = client.get("/api/v1/messages", headers={"X-User-Id": "7"}).json()
        assert [m["role"] for m in stored] == ["user", "model", "user", "model"]

    def test_scopes_are_separate(self, client, provider):
        provider.queue(Message.model_text("Hi"))

        client.post("/api/v1/messages", json=user_body(), headers={"X-User-Id": "7"})

        assert client.get("/api/v1/messages", headers={"X-User-Id": "8"}).json() == []
        assert client.get("/api/v1/messages").json() == []

    def test_error_reply(self, client, provider):
        provider.queue(RuntimeError("provider down"))

        reply = client.post("/api/v1/messages", json=user_body()).json()

        assert reply["type"] == "error"
        assert reply["parts"][0]["text"] == PROCESSING_ERROR
        assert "provider down" not in reply["parts"][0]["text"]

    def test_reset_returns_previous(self, client, provider):
        provider.queue(Message.model_text("Hi"))
        client.post("/api/v1/messages", json=user_body())

        previous = client.delete("/api/v1/messages").json()

        assert len(previous) == 2
        assert client.get("/api/v1/messages").json() == []

    def test_unknown_role_rejected(self, client):
        response = client.post("/api/v1/messages", json={"role": "assistant", "parts": []})

        assert response.status_code == 422

    def test_missing_parts_rejected(self, client):
        response = client.post("/api/v1/messages", json={"role": "user"})

        assert response.status_code == 422


class TestServiceEndpoints:
    """Tests for / and /health."""

    def test_root(self, client):
        assert client.get("/").json()["service"] == "sitepilot"

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] in ("healthy", "degraded")
        assert "registered" in body["providers"]

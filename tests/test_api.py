"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from conftest import make_tool_call
from pocket_agent import __version__
from pocket_agent.api.main import create_app


@pytest.fixture
def api(make_runtime):
    """Factory returning (client, runtime, model) for a scripted runtime."""
    clients = []

    def _make(outputs=()):
        runtime, model = make_runtime(list(outputs))
        client = TestClient(create_app(runtime))
        client.__enter__()
        clients.append(client)
        return client, runtime, model

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


def _create(client) -> str:
    response = client.post("/v1/conversations")
    assert response.status_code == 201
    return response.json()["conversation_id"]


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health(self, api):
        client, runtime, _ = api()
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert data["model"] == "scripted"
        assert data["model_family"] == "qwen25"
        assert data["tools"] == len(runtime.registry)


class TestToolsEndpoint:
    def test_lists_tools_with_schema(self, api):
        client, _, _ = api()
        tools = {t["name"]: t for t in client.get("/v1/tools").json()["tools"]}
        play = tools["play_media"]
        assert play["toolset"] == "media"
        assert play["min_privacy_tier"] == "LOCAL"
        assert play["available"] is True
        assert play["parameters"]["required"] == ["query"]


class TestConversationEndpoints:
    """Tests for the conversation lifecycle."""

    def test_create_conversation(self, api):
        client, _, _ = api()
        response = client.post("/v1/conversations", json={"user_id": "u-1"})
        assert response.status_code == 201
        data = response.json()
        assert data["conversation_id"].startswith("conv-")
        assert [t["role"] for t in data["turns"]] == ["system"]
        assert data["busy"] is False

    def test_send_message(self, api):
        client, runtime, _ = api([make_tool_call("play_media", {"query": "jazz"}), "Enjoy!"])
        conversation_id = _create(client)

        response = client.post(
            f"/v1/conversations/{conversation_id}/messages",
            json={"content": "play some jazz", "include_trace": True},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "done"
        assert data["answer"] == "Enjoy!"
        assert data["failure_reason"] is None
        assert data["iterations"] == 2
        assert data["tools_used"] == ["play_media"]
        assert data["trace"][0]["tool_calls"][0]["output"] == "Now playing jazz"
        assert runtime.backends.media.status() == "Playing: jazz"

    def test_trace_omitted_by_default(self, api):
        client, _, _ = api(["Hi there."])
        conversation_id = _create(client)
        data = client.post(
            f"/v1/conversations/{conversation_id}/messages", json={"content": "hello"}
        ).json()
        assert data["trace"] is None

    def test_failed_outcome_is_reported_not_raised(self, api):
        client, _, _ = api([RuntimeError("model server down")])
        conversation_id = _create(client)
        response = client.post(
            f"/v1/conversations/{conversation_id}/messages", json={"content": "hello"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "failed"
        assert data["failure_reason"] == "InferenceFailure"
        assert "model server down" in data["error"]

    def test_get_conversation_turns(self, api):
        client, _, _ = api(["Hi there."])
        conversation_id = _create(client)
        client.post(f"/v1/conversations/{conversation_id}/messages", json={"content": "hello"})

        data = client.get(f"/v1/conversations/{conversation_id}").json()
        assert [t["role"] for t in data["turns"]] == ["system", "user", "assistant"]
        assert data["turns"][1]["content"] == "hello"
        assert data["iteration"] == 1

    def test_cancel_when_idle(self, api):
        client, _, _ = api()
        conversation_id = _create(client)
        response = client.post(f"/v1/conversations/{conversation_id}/cancel")
        assert response.status_code == 200
        assert response.json() == {"conversation_id": conversation_id, "cancelled": False}

    def test_delete_conversation(self, api):
        client, _, _ = api()
        conversation_id = _create(client)
        assert client.delete(f"/v1/conversations/{conversation_id}").status_code == 204
        assert client.get(f"/v1/conversations/{conversation_id}").status_code == 404


class TestErrors:
    """Unknown conversations are 404, bad bodies are 400."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/v1/conversations/conv-missing"),
            ("post", "/v1/conversations/conv-missing/cancel"),
            ("delete", "/v1/conversations/conv-missing"),
        ],
    )
    def test_unknown_conversation(self, api, method, path):
        client, _, _ = api()
        response = getattr(client, method)(path)
        assert response.status_code == 404
        assert "not found" in response.json()["detail"]

    def test_message_to_unknown_conversation(self, api):
        client, _, _ = api()
        response = client.post("/v1/conversations/conv-missing/messages", json={"content": "hi"})
        assert response.status_code == 404

    @pytest.mark.parametrize("body", [{}, {"content": ""}, {"content": "   "}])
    def test_invalid_message_body(self, api, body):
        client, _, _ = api()
        conversation_id = _create(client)
        response = client.post(f"/v1/conversations/{conversation_id}/messages", json=body)
        assert response.status_code == 400
        assert "detail" in response.json()

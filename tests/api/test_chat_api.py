"""
API tests for `api/chat.py` using FastAPI's TestClient.

Covers:
- POST /api/chat/completions: caller identity from headers, model naming, forwarding to the orchestrator
- POST /api/chat/stream: word frames followed by the [DONE] sentinel, and the error frame
- GET /api/chat/models and GET /health

Mocks:
- `api.chat.get_orchestrator`
"""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient
from main import app

client = TestClient(app)


def _orchestrator(answer="Hi Ada!"):
    orchestrator = MagicMock()
    orchestrator.respond.return_value = answer
    return orchestrator


@patch("api.chat.get_orchestrator")
def test_completions_returns_answer_with_identity(mock_get):
    orchestrator = _orchestrator()
    mock_get.return_value = orchestrator

    resp = client.post(
        "/api/chat/completions",
        json={"message": "hello", "systemPrompt": "Be brief."},
        headers={"X-User-Id": "u-1", "X-User-Name": "Ada", "X-User-Roles": "analyst, admin"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Hi Ada!"
    assert body["userId"] == "u-1"
    assert body["userName"] == "Ada"
    assert body["model"] == "claude-chat"
    assert "timestamp" in body

    args, kwargs = orchestrator.respond.call_args
    assert args == ("hello",)
    assert kwargs["system_prompt"] == "Be brief."
    assert kwargs["use_tools"] is False
    assert kwargs["caller"].roles == ("analyst", "admin")


@patch("api.chat.get_orchestrator")
def test_completions_with_tools_names_tool_model(mock_get):
    mock_get.return_value = _orchestrator("It's sunny.")
    resp = client.post("/api/chat/completions", json={"message": "weather?", "useTools": True})
    assert resp.status_code == 200
    assert resp.json()["model"] == "claude-with-tools"
    assert resp.json()["userId"] == "unknown"
    assert resp.json()["userName"] == "User"


def test_completions_requires_message():
    resp = client.post("/api/chat/completions", json={"useTools": True})
    assert resp.status_code == 422


@patch("api.chat.get_orchestrator")
def test_stream_emits_word_frames_then_done(mock_get):
    mock_get.return_value = _orchestrator("It is sunny")

    resp = client.post("/api/chat/stream", json={"message": "weather?"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.text == "data: It \n\ndata: is \n\ndata: sunny \n\ndata: [DONE]\n\n"


@patch("api.chat.get_orchestrator")
def test_stream_failure_is_an_error_frame(mock_get):
    orchestrator = MagicMock()
    orchestrator.respond.side_effect = RuntimeError("backend down")
    mock_get.return_value = orchestrator

    resp = client.post("/api/chat/stream", json={"message": "hi"})

    assert resp.status_code == 200
    assert resp.text == "data: Error: backend down\n\n"


def test_demo_mode_end_to_end():
    resp = client.post("/api/chat/completions", json={"message": "ping"})
    assert resp.status_code == 200
    assert "ping" in resp.json()["message"]


def test_models_listing():
    resp = client.get("/api/chat/models")
    assert resp.status_code == 200
    ids = [m["id"] for m in resp.json()["models"]]
    assert "claude-with-tools" in ids


def test_health_reports_demo_mode():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["demo_mode"] is True

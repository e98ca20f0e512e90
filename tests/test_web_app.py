from __future__ import annotations

import copy
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

import config
import web_app
from core.data_store import DataStore


@pytest.fixture
def store(tmp_path: Path):
    store = DataStore(str(tmp_path / "nova.db"))
    yield store
    store.close()


@pytest.fixture
def settings() -> dict:
    return copy.deepcopy(config.DEFAULT_SETTINGS)


@pytest.fixture
def http(store, settings):  # noqa: ANN001
    app = web_app.create_app(store, settings)
    app.testing = True
    return app.test_client()


def _completion(text: str) -> MagicMock:
    resp = MagicMock()
    resp.json.return_value = {"choices": [{"message": {"content": text}}]}
    return resp


def test_query_requires_message(http) -> None:  # noqa: ANN001
    resp = http.post("/api/query", json={})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Message is required"}


def test_query_uses_canned_responses_without_key(http, store) -> None:  # noqa: ANN001
    resp = http.post("/api/query", json={"message": "Hey, how are you?"})

    assert resp.status_code == 200
    assert resp.get_json()["response"] == "Hey there! What can I do for you?"
    history = store.get_history()
    assert history[0]["command"] == "Hey, how are you?"
    assert history[0]["response"] == "Hey there! What can I do for you?"


def test_query_default_canned_echo(http) -> None:  # noqa: ANN001
    resp = http.post("/api/query", json={"message": "tell me a riddle"})
    assert resp.get_json()["response"].startswith('I heard you say: "tell me a riddle".')


def test_query_calls_llm_when_key_configured(store, settings) -> None:  # noqa: ANN001
    settings["llm"]["api_key"] = "sk-test"
    http = web_app.create_app(store, settings).test_client()

    with patch("web_app.requests.post", return_value=_completion("Mount Everest.")) as mock_post:
        resp = http.post("/api/query", json={"message": "tallest mountain?"})

    assert resp.get_json() == {"response": "Mount Everest."}
    body = mock_post.call_args.kwargs["json"]
    assert body["model"] == "gpt-3.5-turbo"
    assert body["max_tokens"] == 150
    assert body["temperature"] == 0.7
    assert body["messages"][0] == {"role": "system", "content": config.LLM_SYSTEM_PROMPT}
    assert body["messages"][1] == {"role": "user", "content": "tallest mountain?"}
    assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert store.get_history()[0]["response"] == "Mount Everest."


def test_llm_failure_returns_apology(store, settings) -> None:  # noqa: ANN001
    settings["llm"]["api_key"] = "sk-test"
    http = web_app.create_app(store, settings).test_client()

    with patch("web_app.requests.post", side_effect=requests.ConnectionError()):
        resp = http.post("/api/query", json={"message": "anything"})

    assert resp.status_code == 200
    assert resp.get_json() == {"response": config.LLM_FAILURE_RESPONSE}


def test_response_is_written_to_its_own_row(http, store) -> None:  # noqa: ANN001
    first = store.record_command("pending elsewhere")
    http.post("/api/query", json={"message": "hello"})

    rows = {row["id"]: row for row in store.get_history()}
    assert rows[first]["response"] is None
    assert rows[first + 1]["response"].startswith("Hello!")


def test_reminders_roundtrip(http) -> None:  # noqa: ANN001
    assert http.get("/api/reminders").get_json() == {"reminders": []}

    http.post("/api/reminders", json={"reminder": "buy milk"})
    resp = http.post("/api/reminders", json={"reminder": "call mom"})

    assert resp.get_json() == {"success": True, "reminders": ["call mom", "buy milk"]}
    assert http.get("/api/reminders").get_json() == {"reminders": ["call mom", "buy milk"]}


def test_reminder_required(http) -> None:  # noqa: ANN001
    resp = http.post("/api/reminders", json={"reminder": ""})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_feedback(http) -> None:  # noqa: ANN001
    resp = http.post("/api/feedback", json={"feedback": "nice"})
    assert resp.get_json() == {"success": True, "message": "Feedback received successfully"}

    assert http.post("/api/feedback", json={}).status_code == 400


def test_history_limit_default_and_cap(http, store) -> None:  # noqa: ANN001
    for i in range(120):
        store.record_command(f"command {i}")

    assert len(http.get("/api/history").get_json()["history"]) == 10
    assert len(http.get("/api/history?limit=3").get_json()["history"]) == 3
    assert len(http.get("/api/history?limit=500").get_json()["history"]) == 100
    assert len(http.get("/api/history?limit=abc").get_json()["history"]) == 10
    assert http.get("/api/history?limit=1").get_json()["history"][0]["command"] == "command 119"


def test_system_info(http) -> None:  # noqa: ANN001
    data = http.get("/api/system").get_json()
    assert data["status"] == "online"
    assert data["version"] == web_app.__version__
    assert data["features"] == config.FEATURES
    assert data["llm"] is False
    assert "server_time" in data


def test_mock_weather_and_news(http) -> None:  # noqa: ANN001
    assert http.get("/api/weather").get_json()["condition"] == "Sunny"
    assert len(http.get("/api/news").get_json()["news"]) == 3


def test_preferences(http) -> None:  # noqa: ANN001
    assert http.get("/api/preferences").get_json() == {"preferences": {}}

    resp = http.post("/api/preferences", json={"key": "auto_speak", "value": False})
    assert resp.get_json() == {"success": True, "preferences": {"auto_speak": "false"}}

    http.post("/api/preferences", json={"key": "auto_speak", "value": True})
    http.post("/api/preferences", json={"key": "language", "value": "en-GB"})
    assert http.get("/api/preferences").get_json()["preferences"] == {
        "auto_speak": "true", "language": "en-GB",
    }
    assert http.post("/api/preferences", json={"value": 1}).status_code == 400


def test_unknown_route_is_json_404(http) -> None:  # noqa: ANN001
    resp = http.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Endpoint not found"}


def test_unhandled_error_is_json_500(store, settings) -> None:  # noqa: ANN001
    store.get_preferences = MagicMock(side_effect=RuntimeError("disk on fire"))
    http = web_app.create_app(store, settings).test_client()

    resp = http.get("/api/preferences")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_canned_response_order() -> None:
    # "hello" is checked before "hey" and "how are you"
    assert web_app.canned_response("hello hey how are you").startswith("Hello!")
    assert web_app.canned_response("Thank you!") == config.CANNED_RESPONSES[4][1]

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from src.app.config import Settings, get_settings
from src.app.dependencies import get_chat_orchestrator
from src.app.main import app
from src.orchestrator.chat import ChatOrchestrator
from src.providers.inline import InlineCompletionProvider
from src.providers.threaded import ThreadedRunProvider
from src.services.tools import ToolDispatcher

JANE_QUERY = "I need a logo, budget $500, email me at a@b.com, name Jane"


class RecordingSink:
    def __init__(self) -> None:
        self.saved = []

    def save(self, record):
        self.saved.append(record)
        return {"ok": True, "id": f"contact-{len(self.saved)}"}


class ScriptedCompletions:
    """Answers every first call with a saveContact call and every follow-up with text."""

    def __init__(self) -> None:
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if "tools" in kwargs:
            tool_call = SimpleNamespace(
                id=f"call_{len(self.calls)}",
                type="function",
                function=SimpleNamespace(
                    name="saveContact",
                    arguments=json.dumps(
                        {
                            "from_name": "Jane",
                            "from_email": "a@b.com",
                            "service_category": "logo_design",
                            "budget": "$500",
                            "project_details": JANE_QUERY,
                        }
                    ),
                ),
            )
            message = SimpleNamespace(role="assistant", content=None, tool_calls=[tool_call])
        else:
            message = SimpleNamespace(
                role="assistant",
                content="Thanks Jane! A designer will reach out at a@b.com.",
                tool_calls=None,
            )
        return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


class StuckRuns:
    def __init__(self) -> None:
        self.polls = 0

    def create(self, **kwargs):
        return SimpleNamespace(id="run_1", status="queued")

    def retrieve(self, run_id, thread_id):
        self.polls += 1
        return SimpleNamespace(id=run_id, status="in_progress", required_action=None)


def _settings(**overrides) -> Settings:
    values = {"openai_api_key": "sk-test", "chat_provider": "inline"}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def completions():
    return ScriptedCompletions()


@pytest.fixture()
def client(sink, completions):
    settings = _settings()
    dispatcher = ToolDispatcher(contact_sink=sink)
    openai_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    orchestrator = ChatOrchestrator(
        settings=settings,
        provider_factory=lambda: InlineCompletionProvider(openai_client, dispatcher, settings.openai_model),
    )
    overrides = {
        get_chat_orchestrator: lambda: orchestrator,
        get_settings: lambda: settings,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield TestClient(app)
    finally:
        for key in overrides:
            app.dependency_overrides.pop(key, None)


def _payload(content: str = JANE_QUERY) -> dict:
    return {"messages": [{"role": "user", "content": content}]}


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_preflight_returns_cors_headers(client: TestClient):
    response = client.options("/api/chat")

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-allow-headers"] == "Content-Type"


def test_get_is_not_allowed(client: TestClient):
    response = client.get("/api/chat")

    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


@pytest.mark.parametrize("method", ["TRACE", "PROPFIND"])
def test_unrouted_methods_use_error_shape_and_cors(client: TestClient, method: str):
    response = client.request(method, "/api/chat")

    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}
    assert response.headers["access-control-allow-origin"] == "*"


def test_head_is_not_allowed_and_keeps_cors(client: TestClient):
    response = client.head("/api/chat")

    assert response.status_code == 405
    assert response.headers["access-control-allow-origin"] == "*"


def test_unknown_path_keeps_default_not_found(client: TestClient):
    response = client.get("/api/missing")

    assert response.status_code == 404
    assert "detail" in response.json()


def test_non_json_body_is_bad_request(client: TestClient, sink: RecordingSink):
    response = client.post(
        "/api/chat",
        content="this is not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()
    assert sink.saved == []


def test_messages_must_be_an_array(client: TestClient):
    response = client.post("/api/chat", json={"messages": "I need a logo"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid messages format. Expected an array."}


def test_lead_scenario_saves_contact_and_replies(client: TestClient, sink: RecordingSink, completions):
    response = client.post("/api/chat", json=_payload())

    assert response.status_code == 200
    data = response.json()
    content = data["choices"][0]["message"]["content"]
    assert data["choices"][0]["message"]["role"] == "assistant"
    assert content
    assert response.headers["access-control-allow-origin"] == "*"

    assert len(sink.saved) == 1
    record = sink.saved[0]
    assert record.from_name == "Jane"
    assert record.from_email == "a@b.com"
    assert record.budget == "$500"
    assert record.service_category == "logo_design"
    assert len(completions.calls) == 2


def test_identical_history_twice_saves_twice(client: TestClient, sink: RecordingSink):
    first = client.post("/api/chat", json=_payload())
    second = client.post("/api/chat", json=_payload())

    assert first.status_code == 200
    assert second.status_code == 200
    assert len(sink.saved) == 2


def test_missing_api_key_returns_server_error():
    settings = _settings(openai_api_key="")
    orchestrator = ChatOrchestrator(settings=settings, provider_factory=lambda: None)
    app.dependency_overrides[get_chat_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        response = TestClient(app).post("/api/chat", json=_payload("hello"))
    finally:
        app.dependency_overrides.pop(get_chat_orchestrator, None)
        app.dependency_overrides.pop(get_settings, None)

    assert response.status_code == 500
    assert "not configured" in response.json()["error"]


def test_stuck_threaded_run_returns_gateway_timeout(sink: RecordingSink):
    settings = _settings(chat_provider="threaded", openai_assistant_id="asst_123")
    runs = StuckRuns()
    threads = SimpleNamespace(
        create=lambda **_: SimpleNamespace(id="thread_1"),
        messages=SimpleNamespace(create=lambda **_: SimpleNamespace(id="msg_1")),
        runs=runs,
    )
    provider = ThreadedRunProvider(
        client=SimpleNamespace(beta=SimpleNamespace(threads=threads)),
        dispatcher=ToolDispatcher(contact_sink=sink),
        assistant_id=settings.openai_assistant_id,
        sleep=lambda _: None,
    )
    orchestrator = ChatOrchestrator(settings=settings, provider_factory=lambda: provider)
    app.dependency_overrides[get_chat_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        response = TestClient(app).post("/api/chat", json=_payload("hello"))
    finally:
        app.dependency_overrides.pop(get_chat_orchestrator, None)
        app.dependency_overrides.pop(get_settings, None)

    assert response.status_code == 504
    assert "timeout" in response.json()["error"]
    assert runs.polls == 30

from __future__ import annotations

import json

import pytest

from src.services.contact import ContactSinkError
from src.services.tools import SAVE_CONTACT_TOOL, ToolCall, ToolDispatcher


class RecordingSink:
    def __init__(self) -> None:
        self.saved = []

    def save(self, record):
        self.saved.append(record)
        return {"ok": True, "id": f"contact-{len(self.saved)}"}


class FailingSink:
    def __init__(self) -> None:
        self.attempts = 0

    def save(self, record):
        self.attempts += 1
        raise ContactSinkError("Contact save endpoint returned status 502: bad gateway")


def _arguments(**overrides):
    arguments = {
        "from_name": "Jane",
        "from_email": "a@b.com",
        "service_category": "logo_design",
        "budget": "$500",
        "project_details": "I need a logo",
    }
    arguments.update(overrides)
    return {key: value for key, value in arguments.items() if value is not ...}


def _call(arguments) -> ToolCall:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return ToolCall(name="saveContact", arguments=raw, id="call_1")


@pytest.fixture()
def sink():
    return RecordingSink()


def test_valid_call_saves_contact(sink):
    dispatcher = ToolDispatcher(contact_sink=sink)

    result = dispatcher.dispatch(_call(_arguments(phone="+1 555 0100")))

    assert result.ok is True
    assert result.value == {"ok": True, "id": "contact-1"}
    assert len(sink.saved) == 1
    record = sink.saved[0]
    assert record.from_name == "Jane"
    assert record.from_email == "a@b.com"
    assert record.phone == "+1 555 0100"
    assert record.message is None
    assert json.loads(result.as_tool_output()) == {"ok": True, "id": "contact-1"}


def test_missing_required_field_never_reaches_sink(sink):
    dispatcher = ToolDispatcher(contact_sink=sink)

    result = dispatcher.dispatch(_call(_arguments(from_email=...)))

    assert result.ok is False
    assert result.stage == "validation"
    assert "from_email" in result.error
    assert sink.saved == []


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "",
        json.dumps(["Jane", "a@b.com"]),
    ],
)
def test_malformed_arguments_are_rejected(sink, raw):
    dispatcher = ToolDispatcher(contact_sink=sink)

    result = dispatcher.dispatch(_call(raw))

    assert result.ok is False
    assert result.stage == "validation"
    assert sink.saved == []


def test_blank_and_null_required_values_count_as_missing(sink):
    dispatcher = ToolDispatcher(contact_sink=sink)

    blank = dispatcher.dispatch(_call(_arguments(budget="   ")))
    null = dispatcher.dispatch(_call(_arguments(from_name=None)))

    assert "budget" in blank.error
    assert "from_name" in null.error
    assert sink.saved == []


def test_wrong_argument_type_is_rejected(sink):
    dispatcher = ToolDispatcher(contact_sink=sink)

    result = dispatcher.dispatch(_call(_arguments(budget=500)))

    assert result.ok is False
    assert "budget" in result.error
    assert sink.saved == []


def test_unknown_tool_is_rejected(sink):
    dispatcher = ToolDispatcher(contact_sink=sink)

    result = dispatcher.dispatch(ToolCall(name="deleteEverything", arguments="{}"))

    assert result.ok is False
    assert "deleteEverything" in result.error
    assert sink.saved == []


def test_sink_failure_is_reported_not_raised():
    failing = FailingSink()
    dispatcher = ToolDispatcher(contact_sink=failing)

    result = dispatcher.dispatch(_call(_arguments()))

    assert failing.attempts == 1
    assert result.ok is False
    assert result.stage == "sink"
    assert "502" in result.error
    assert json.loads(result.as_tool_output()) == {"error": result.error}


def test_openai_tool_declaration_lists_required_fields(sink):
    dispatcher = ToolDispatcher(contact_sink=sink)

    tools = dispatcher.openai_tools()

    assert len(tools) == 1
    declaration = tools[0]
    assert declaration["type"] == "function"
    assert declaration["function"]["name"] == "saveContact"
    parameters = declaration["function"]["parameters"]
    assert parameters["required"] == SAVE_CONTACT_TOOL.required
    assert set(parameters["properties"]) == {
        "from_name",
        "from_email",
        "phone",
        "service_category",
        "budget",
        "project_details",
        "message",
    }

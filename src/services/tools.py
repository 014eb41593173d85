from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from src.schemas.contact import ContactRecord
from src.services.contact import ContactSink, ContactSinkError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolParameter:
    description: str
    type: str = "string"


@dataclass(frozen=True)
class ToolSchema:
    name: str
    description: str
    parameters: Dict[str, ToolParameter]
    required: List[str] = field(default_factory=list)

    def json_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "required": list(self.required),
            "properties": {
                key: {"type": param.type, "description": param.description}
                for key, param in self.parameters.items()
            },
        }

    def to_openai_tool(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }


SAVE_CONTACT_TOOL = ToolSchema(
    name="saveContact",
    description="Save the visitor's contact details and project request for the sales team",
    parameters={
        "from_name": ToolParameter("Full name of the user"),
        "from_email": ToolParameter("User's email address"),
        "phone": ToolParameter("(Optional) User's phone number"),
        "service_category": ToolParameter("Requested service, e.g. 'logo_design' or 'chat_inquiry'"),
        "budget": ToolParameter("Stated budget, or 'not_specified'"),
        "project_details": ToolParameter("Full chat message or project details"),
        "message": ToolParameter("(Optional) Same as project_details"),
    },
    required=["from_name", "from_email", "service_category", "budget", "project_details"],
)


@dataclass(frozen=True)
class ToolCall:
    name: str
    arguments: str
    id: Optional[str] = None


@dataclass
class DispatchResult:
    tool_name: str
    value: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    stage: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_tool_output(self) -> str:
        if self.ok:
            return json.dumps(self.value)
        return json.dumps({"error": self.error})


class ToolValidationError(ValueError):
    pass


_JSON_TYPES: Dict[str, Callable[[Any], bool]] = {
    "string": lambda value: isinstance(value, str),
    "integer": lambda value: isinstance(value, int) and not isinstance(value, bool),
    "number": lambda value: isinstance(value, (int, float)) and not isinstance(value, bool),
    "boolean": lambda value: isinstance(value, bool),
    "object": lambda value: isinstance(value, dict),
    "array": lambda value: isinstance(value, list),
}


def parse_arguments(schema: ToolSchema, raw_arguments: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(raw_arguments or "")
    except json.JSONDecodeError as exc:
        raise ToolValidationError(f"Invalid JSON in tool arguments: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ToolValidationError("Tool arguments must be a JSON object")

    missing = [name for name in schema.required if _is_blank(parsed.get(name))]
    if missing:
        raise ToolValidationError(f"Missing required argument(s): {', '.join(missing)}")

    for key, value in parsed.items():
        param = schema.parameters.get(key)
        if param is None or value is None:
            continue
        check = _JSON_TYPES.get(param.type)
        if check is not None and not check(value):
            raise ToolValidationError(f"Argument '{key}' has wrong type; expected {param.type}")
    return parsed


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class ToolDispatcher:
    """Validates model-issued tool calls and runs the matching action."""

    def __init__(self, contact_sink: ContactSink) -> None:
        self._contact_sink = contact_sink
        self._schemas: Dict[str, ToolSchema] = {SAVE_CONTACT_TOOL.name: SAVE_CONTACT_TOOL}
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            SAVE_CONTACT_TOOL.name: self._save_contact,
        }

    def openai_tools(self) -> List[Dict[str, Any]]:
        return [schema.to_openai_tool() for schema in self._schemas.values()]

    def dispatch(self, call: ToolCall) -> DispatchResult:
        schema = self._schemas.get(call.name)
        if schema is None:
            logger.error("Model requested unknown tool", extra={"tool": call.name})
            return DispatchResult(call.name, error=f"Unknown tool: {call.name}", stage="validation")

        try:
            arguments = parse_arguments(schema, call.arguments)
        except ToolValidationError as exc:
            logger.error(
                "Rejected %s call: %s",
                call.name,
                exc,
                extra={"tool": call.name, "arguments": call.arguments},
            )
            return DispatchResult(call.name, error=str(exc), stage="validation")

        try:
            value = self._handlers[call.name](arguments)
        except ContactSinkError as exc:
            logger.error("Tool %s failed: %s", call.name, exc, extra={"tool": call.name})
            return DispatchResult(call.name, error=str(exc), stage="sink")

        logger.info("Tool %s completed", call.name)
        return DispatchResult(call.name, value=value)

    def _save_contact(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        record = ContactRecord(**arguments)
        return self._contact_sink.save(record)

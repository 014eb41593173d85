from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from pydantic import ValidationError

from src.app.config import Settings
from src.orchestrator.errors import (
    ChatError,
    ConfigurationError,
    InvalidRequestError,
    MethodNotAllowedError,
)
from src.providers.base import ModelProvider
from src.schemas.chat import ChatRequest, ChatResponse, ErrorResponse

logger = logging.getLogger(__name__)

RawBody = Union[str, bytes, None]

GENERIC_FAILURE = "An unexpected error occurred while processing the chat request"


@dataclass
class ChatResult:
    status_code: int
    body: Dict[str, Any]


class ChatOrchestrator:
    """Entry point for one chat submission.

    Validates the request, checks configuration, runs the configured model
    provider and normalizes whatever happens into a status code plus either
    a ``choices`` payload or an ``error`` payload.
    """

    def __init__(self, settings: Settings, provider_factory: Callable[[], ModelProvider]) -> None:
        self._settings = settings
        self._provider_factory = provider_factory

    def handle(self, method: str, raw_body: RawBody) -> ChatResult:
        method = (method or "").upper()
        if method == "OPTIONS":
            return ChatResult(204, {})

        stage = "validate"
        try:
            if method != "POST":
                raise MethodNotAllowedError("Method not allowed", {"method": method})
            request = self.parse_request(raw_body)

            stage = "configure"
            self.check_configuration()
            provider = self._provider_factory()

            stage = f"generate:{provider.name}"
            response = provider.generate(request.messages)
        except ChatError as exc:
            log = logger.warning if exc.status_code < 500 else logger.error
            log(
                "Chat request failed at %s: %s",
                stage,
                exc.message,
                extra={"stage": stage, "payload": _preview(raw_body), "error": exc.to_dict()},
            )
            return ChatResult(exc.status_code, ErrorResponse(error=exc.message).model_dump())
        except Exception as exc:
            logger.exception(
                "Chat function error at %s",
                stage,
                extra={"stage": stage, "payload": _preview(raw_body)},
            )
            detail = str(exc)
            message = f"Error processing chat request: {detail}" if detail else GENERIC_FAILURE
            return ChatResult(500, ErrorResponse(error=message).model_dump())

        if response.is_error or not response.content:
            return ChatResult(500, ErrorResponse(error=response.error or GENERIC_FAILURE).model_dump())
        return ChatResult(200, ChatResponse.from_content(response.content).model_dump())

    def parse_request(self, raw_body: RawBody) -> ChatRequest:
        if raw_body is None:
            raise InvalidRequestError("Request body is required")
        try:
            text = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
        except UnicodeDecodeError as exc:
            raise InvalidRequestError("Invalid JSON in request body") from exc
        if not text.strip():
            raise InvalidRequestError("Request body is required")

        logger.debug("Chat payload: %s", _preview(text))
        try:
            parsed = json.loads(text)
        except ValueError as exc:
            raise InvalidRequestError("Invalid JSON in request body") from exc

        messages = parsed.get("messages") if isinstance(parsed, dict) else None
        if not isinstance(messages, list):
            raise InvalidRequestError("Invalid messages format. Expected an array.")

        latest = messages[-1] if messages else None
        content = latest.get("content") if isinstance(latest, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise InvalidRequestError("No message content provided.")

        try:
            return ChatRequest.model_validate({"messages": messages})
        except ValidationError as exc:
            raise InvalidRequestError(f"Invalid message format: {_first_error(exc)}") from exc

    def check_configuration(self) -> None:
        if not self._settings.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key is not configured. Please check your environment variables."
            )
        if self._settings.chat_provider == "threaded" and not self._settings.openai_assistant_id:
            raise ConfigurationError(
                "OpenAI assistant ID is not configured. Please check your environment variables."
            )


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}"


def _preview(raw_body: RawBody, limit: int = 2000) -> Optional[str]:
    if raw_body is None:
        return None
    if isinstance(raw_body, bytes):
        raw_body = raw_body.decode("utf-8", errors="replace")
    return raw_body[:limit]

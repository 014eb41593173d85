from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from src.orchestrator.errors import ProviderError, ToolDispatchError
from src.schemas.chat import ChatMessage, NormalizedResponse
from src.services.tools import ToolCall, ToolDispatcher

logger = logging.getLogger(__name__)


class InlineCompletionProvider:
    """Single chat-completion call with the tool call embedded in the reply.

    When the model asks for a tool, the call is dispatched and exactly one
    follow-up completion is requested with the tool result appended. The
    follow-up carries no tools, so it cannot ask for another call.
    """

    name = "inline"

    def __init__(self, client, dispatcher: ToolDispatcher, model: str) -> None:
        self._client = client
        self._dispatcher = dispatcher
        self._model = model

    def generate(self, messages: List[ChatMessage]) -> NormalizedResponse:
        conversation = [message.to_provider() for message in messages]
        completion = self._client.chat.completions.create(
            model=self._model,
            messages=conversation,
            tools=self._dispatcher.openai_tools(),
            tool_choice="auto",
        )
        reply = self._first_message(completion)

        call = self._extract_tool_call(reply)
        if call is None:
            return NormalizedResponse.ok(self._require_content(reply))

        logger.info("Model requested tool %s", call.name)
        result = self._dispatcher.dispatch(call)
        if not result.ok:
            raise ToolDispatchError(call.name, result.error or "unknown error")

        follow_up = self._client.chat.completions.create(
            model=self._model,
            messages=[
                *conversation,
                self._tool_call_message(reply, call),
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": result.as_tool_output(),
                },
            ],
        )
        return NormalizedResponse.ok(self._require_content(self._first_message(follow_up)))

    def _first_message(self, completion) -> Any:
        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise ProviderError("Model returned no choices")
        return choices[0].message

    def _extract_tool_call(self, message) -> Optional[ToolCall]:
        tool_calls = getattr(message, "tool_calls", None) or []
        if tool_calls:
            if len(tool_calls) > 1:
                logger.warning("Model issued %d tool calls; only the first is handled", len(tool_calls))
            first = tool_calls[0]
            return ToolCall(
                name=first.function.name,
                arguments=first.function.arguments,
                id=first.id,
            )
        return None

    def _tool_call_message(self, message, call: ToolCall) -> Dict[str, Any]:
        return {
            "role": "assistant",
            "content": getattr(message, "content", None),
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
            ],
        }

    def _require_content(self, message) -> str:
        content = getattr(message, "content", None)
        if not content:
            raise ProviderError("No response content from model")
        return content

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant", "function", "tool"]


class FunctionCall(BaseModel):
    name: str
    arguments: str = Field(default="{}", description="JSON-encoded arguments")


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    role: Role = Field(..., description="Message role such as user, assistant, tool")
    # Null on assistant turns that only carry a function or tool call.
    content: Optional[str] = Field(default=None, description="Plain text content")
    name: Optional[str] = None
    function_call: Optional[FunctionCall] = Field(
        default=None,
        validation_alias=AliasChoices("function_call", "functionCall"),
    )
    tool_calls: Optional[List[Dict[str, Any]]] = None
    tool_call_id: Optional[str] = None

    def to_provider(self) -> dict:
        return self.model_dump(exclude_none=True)


class ChatRequest(BaseModel):
    messages: List[ChatMessage]

    def latest_user_content(self) -> str:
        for message in reversed(self.messages):
            if message.role == "user" and message.content:
                return message.content
        return self.messages[-1].content or ""


class NormalizedResponse(BaseModel):
    """Either ``content`` or ``error`` is set, never both."""

    content: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, content: str) -> "NormalizedResponse":
        return cls(content=content)

    @classmethod
    def failure(cls, error: str) -> "NormalizedResponse":
        return cls(error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class ChatChoice(BaseModel):
    index: int = 0
    message: AssistantMessage


class ChatResponse(BaseModel):
    choices: List[ChatChoice]

    @classmethod
    def from_content(cls, content: str) -> "ChatResponse":
        return cls(choices=[ChatChoice(message=AssistantMessage(content=content))])


class ErrorResponse(BaseModel):
    error: str

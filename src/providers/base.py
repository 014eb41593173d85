from __future__ import annotations

from typing import List, Protocol

from src.schemas.chat import ChatMessage, NormalizedResponse


class ModelProvider(Protocol):
    """A language-model backend strategy.

    ``generate`` returns the assistant reply as a ``NormalizedResponse`` with
    ``content`` set; failures are raised as ``ChatError`` subclasses and
    normalized by the orchestrator.
    """

    name: str

    def generate(self, messages: List[ChatMessage]) -> NormalizedResponse:  # pragma: no cover - interface
        ...

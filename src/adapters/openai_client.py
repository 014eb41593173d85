from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from openai import OpenAI


@dataclass
class OpenAIClientFactory:
    api_key: str
    _client: Optional[OpenAI] = field(default=None, init=False, repr=False)

    def get_client(self) -> OpenAI:
        if not self.api_key:
            raise RuntimeError("OpenAI API key must be configured")
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client


def first_text_block(message: Any) -> Optional[str]:
    """Return the first non-empty text value of a thread message, if any."""
    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) != "text":
            continue
        text = getattr(block, "text", None)
        value = getattr(text, "value", None)
        if value:
            return value
    return None

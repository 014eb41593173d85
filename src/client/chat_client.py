from __future__ import annotations

import logging
from typing import List, Optional

import requests

from src.client.session_store import SessionStore
from src.schemas.chat import ChatMessage, NormalizedResponse

logger = logging.getLogger(__name__)

SEND_FAILED = "Failed to send message. Please try again."
INVALID_RESPONSE = "Invalid response format"


class ChatClient:
    """Talks to the chat endpoint on behalf of a UI and keeps session history.

    Every call posts the full history. A failed call leaves the stored
    history as it was, apart from the user turn that was just sent.
    """

    def __init__(
        self,
        base_url: str,
        store: SessionStore,
        path: str = "/api/chat",
        timeout: float = 60.0,
        http: Optional[requests.Session] = None,
    ) -> None:
        self._url = base_url.rstrip("/") + path
        self._store = store
        self._timeout = timeout
        self._http = http or requests.Session()

    def history(self, session_id: str) -> List[ChatMessage]:
        return self._store.get(session_id)

    def clear(self, session_id: str) -> None:
        self._store.clear(session_id)

    def send(self, session_id: str, text: str) -> NormalizedResponse:
        if not text.strip():
            return NormalizedResponse.failure("Message cannot be empty")

        self._store.append(session_id, ChatMessage(role="user", content=text))
        result = self.send_message(self._store.get(session_id))
        if result.content is not None:
            self._store.append(session_id, ChatMessage(role="assistant", content=result.content))
        return result

    def send_message(self, messages: List[ChatMessage]) -> NormalizedResponse:
        payload = {"messages": [message.model_dump(exclude_none=True) for message in messages]}
        try:
            response = self._http.post(self._url, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Chat request failed: %s", exc)
            return NormalizedResponse.failure(str(exc) or SEND_FAILED)

        if not response.text:
            return NormalizedResponse.failure(INVALID_RESPONSE if response.ok else SEND_FAILED)
        try:
            data = response.json()
        except ValueError:
            logger.error("Unparseable chat response (status %s)", response.status_code)
            return NormalizedResponse.failure(INVALID_RESPONSE if response.ok else SEND_FAILED)

        if not isinstance(data, dict):
            return NormalizedResponse.failure(INVALID_RESPONSE)
        if data.get("error"):
            return NormalizedResponse.failure(str(data["error"]))
        if not response.ok:
            return NormalizedResponse.failure(SEND_FAILED)

        choices = data.get("choices") or []
        message = choices[0].get("message") if choices and isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            return NormalizedResponse.failure(INVALID_RESPONSE)
        return NormalizedResponse.ok(content)

from __future__ import annotations

import threading
from typing import Dict, List, MutableMapping, Protocol

from src.schemas.chat import ChatMessage


class SessionStore(Protocol):
    def get(self, session_id: str) -> List[ChatMessage]:  # pragma: no cover - interface
        ...

    def append(self, session_id: str, message: ChatMessage) -> None:  # pragma: no cover - interface
        ...

    def clear(self, session_id: str) -> None:  # pragma: no cover - interface
        ...


class InMemorySessionStore:
    """Process-local chat history keyed by session id."""

    def __init__(self) -> None:
        self._sessions: Dict[str, List[ChatMessage]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> List[ChatMessage]:
        with self._lock:
            return list(self._sessions.get(session_id, []))

    def append(self, session_id: str, message: ChatMessage) -> None:
        with self._lock:
            self._sessions.setdefault(session_id, []).append(message)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)


class MappingSessionStore:
    """Stores history as plain dicts inside a caller-owned mapping.

    Used with ``st.session_state`` so the history survives Streamlit reruns.
    """

    def __init__(self, backing: MutableMapping, prefix: str = "chat_") -> None:
        self._backing = backing
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    def get(self, session_id: str) -> List[ChatMessage]:
        return [ChatMessage.model_validate(item) for item in self._backing.get(self._key(session_id), [])]

    def append(self, session_id: str, message: ChatMessage) -> None:
        key = self._key(session_id)
        history = list(self._backing.get(key, []))
        history.append(message.model_dump(exclude_none=True))
        self._backing[key] = history

    def clear(self, session_id: str) -> None:
        self._backing.pop(self._key(session_id), None)

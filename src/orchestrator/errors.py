"""Error hierarchy for the chat pipeline.

Lower layers raise these; only the orchestrator boundary turns them into
HTTP responses, using ``status_code`` and the sanitized ``message``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ChatError(Exception):
    """Base class for errors with a client-facing message and status."""

    status_code: int = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class InvalidRequestError(ChatError):
    status_code = 400


class MethodNotAllowedError(ChatError):
    status_code = 405


class ConfigurationError(ChatError):
    """Required configuration is missing. Messages never include secret values."""

    status_code = 500


class ProviderError(ChatError):
    """The model backend returned something the pipeline cannot use."""

    status_code = 500


class RunFailedError(ProviderError):
    def __init__(self, status: str, run_id: Optional[str] = None) -> None:
        super().__init__(
            f"Assistant run ended with status: {status}",
            {"status": status, "run_id": run_id},
        )
        self.status = status


class RunTimeoutError(ChatError):
    status_code = 504

    def __init__(self, attempts: int, run_id: Optional[str] = None) -> None:
        super().__init__(
            f"Assistant run timeout: no result after {attempts} status checks",
            {"attempts": attempts, "run_id": run_id},
        )
        self.attempts = attempts


class ToolDispatchError(ChatError):
    status_code = 500

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(
            "Failed to save contact information",
            {"tool": tool_name, "reason": reason},
        )
        self.tool_name = tool_name
        self.reason = reason

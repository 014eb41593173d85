from __future__ import annotations

from enum import Enum


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    INCOMPLETE = "incomplete"

    @classmethod
    def from_label(cls, label: str) -> "RunStatus":
        try:
            return cls(label)
        except ValueError as exc:
            raise ValueError(f"Unsupported run status: {label}") from exc

    @property
    def is_pending(self) -> bool:
        return self in (RunStatus.QUEUED, RunStatus.IN_PROGRESS, RunStatus.CANCELLING)

    @property
    def is_failure(self) -> bool:
        return self in (
            RunStatus.FAILED,
            RunStatus.EXPIRED,
            RunStatus.CANCELLED,
            RunStatus.INCOMPLETE,
        )

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from src.services.tools import ToolCall


@dataclass
class RunState:
    user_content: str = ""
    thread_id: Optional[str] = None
    run_id: Optional[str] = None
    status: Optional[str] = None
    attempts: int = 0
    pending_tool_calls: List[ToolCall] = field(default_factory=list)
    tool_calls_resolved: int = 0
    reply: Optional[str] = None

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from typing import Any, Callable, Dict, List

from langgraph.graph import END, StateGraph

from src.adapters.openai_client import first_text_block
from src.orchestrator.errors import (
    ProviderError,
    RunFailedError,
    RunTimeoutError,
    ToolDispatchError,
)
from src.orchestrator.state import RunState
from src.orchestrator.status import RunStatus
from src.schemas.chat import ChatMessage, ChatRequest, NormalizedResponse
from src.services.tools import ToolCall, ToolDispatcher

logger = logging.getLogger(__name__)

ONE_CALL_PER_TURN = "Only one tool call is handled per turn"


class ThreadedRunProvider:
    """Assistant thread/run strategy driven by a LangGraph state machine.

    create_thread -> post_message -> start_run -> poll_run, looping on
    poll_run while the run is pending and detouring through
    resolve_tool_call when the run requires tool outputs, then fetch_reply.
    Polling is capped at ``max_attempts`` status checks.
    """

    name = "threaded"

    def __init__(
        self,
        client,
        dispatcher: ToolDispatcher,
        assistant_id: str,
        poll_interval: float = 1.0,
        max_attempts: int = 30,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._threads = client.beta.threads
        self._dispatcher = dispatcher
        self._assistant_id = assistant_id
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._sleep = sleep
        self._graph = self._build_graph().compile()

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(RunState)

        graph.add_node("create_thread", self._create_thread_node)
        graph.add_node("post_message", self._post_message_node)
        graph.add_node("start_run", self._start_run_node)
        graph.add_node("poll_run", self._poll_run_node)
        graph.add_node("resolve_tool_call", self._resolve_tool_call_node)
        graph.add_node("fetch_reply", self._fetch_reply_node)

        graph.set_entry_point("create_thread")
        graph.add_edge("create_thread", "post_message")
        graph.add_edge("post_message", "start_run")
        graph.add_edge("start_run", "poll_run")
        graph.add_conditional_edges(
            "poll_run",
            self._poll_router,
            {
                "pending": "poll_run",
                "requires_action": "resolve_tool_call",
                "completed": "fetch_reply",
            },
        )
        graph.add_edge("resolve_tool_call", "poll_run")
        graph.add_edge("fetch_reply", END)

        return graph

    def generate(self, messages: List[ChatMessage]) -> NormalizedResponse:
        request = ChatRequest(messages=messages)
        initial = RunState(user_content=request.latest_user_content())
        result = self._graph.invoke(
            asdict(initial),
            config={"recursion_limit": self._max_attempts * 2 + 10},
        )
        reply = result.get("reply") if isinstance(result, dict) else getattr(result, "reply", None)
        if not reply:
            raise ProviderError("No response content from assistant")
        return NormalizedResponse.ok(reply)

    def _create_thread_node(self, state: RunState) -> Dict[str, Any]:
        thread = self._threads.create()
        logger.debug("Created thread %s", thread.id)
        return {"thread_id": thread.id}

    def _post_message_node(self, state: RunState) -> Dict[str, Any]:
        # The backend thread holds prior turns; only the active query is posted.
        self._threads.messages.create(
            thread_id=state.thread_id,
            role="user",
            content=state.user_content,
        )
        return {"thread_id": state.thread_id}

    def _start_run_node(self, state: RunState) -> Dict[str, Any]:
        run = self._threads.runs.create(
            thread_id=state.thread_id,
            assistant_id=self._assistant_id,
            tools=self._dispatcher.openai_tools(),
        )
        logger.info("Started run %s on thread %s", run.id, state.thread_id)
        return {"run_id": run.id, "status": run.status}

    def _poll_run_node(self, state: RunState) -> Dict[str, Any]:
        if state.attempts >= self._max_attempts:
            raise RunTimeoutError(state.attempts, state.run_id)

        self._sleep(self._poll_interval)
        run = self._threads.runs.retrieve(run_id=state.run_id, thread_id=state.thread_id)
        attempts = state.attempts + 1
        status = RunStatus.from_label(run.status)
        logger.debug("Run %s status %s (check %d/%d)", state.run_id, status.value, attempts, self._max_attempts)

        if status.is_failure:
            logger.error(
                "Run %s ended with status %s",
                state.run_id,
                status.value,
                extra={"run_id": state.run_id, "last_error": getattr(run, "last_error", None)},
            )
            raise RunFailedError(status.value, state.run_id)
        if status.is_pending and attempts >= self._max_attempts:
            logger.error("Run %s still %s after %d checks; abandoning", state.run_id, status.value, attempts)
            raise RunTimeoutError(attempts, state.run_id)

        update: Dict[str, Any] = {"status": status.value, "attempts": attempts}
        if status is RunStatus.REQUIRES_ACTION:
            update["pending_tool_calls"] = self._required_tool_calls(run)
        return update

    def _poll_router(self, state: RunState) -> str:
        status = RunStatus.from_label(state.status or RunStatus.QUEUED.value)
        if status is RunStatus.COMPLETED:
            return "completed"
        if status is RunStatus.REQUIRES_ACTION:
            return "requires_action"
        return "pending"

    def _resolve_tool_call_node(self, state: RunState) -> Dict[str, Any]:
        calls = list(state.pending_tool_calls)
        outputs = []
        if state.tool_calls_resolved:
            rejected = calls
        else:
            first, rejected = calls[0], calls[1:]
            result = self._dispatcher.dispatch(first)
            if not result.ok:
                raise ToolDispatchError(first.name, result.error or "unknown error")
            outputs.append({"tool_call_id": first.id, "output": result.as_tool_output()})

        for call in rejected:
            logger.warning("Declining extra tool call %s on run %s", call.name, state.run_id)
            outputs.append({"tool_call_id": call.id, "output": json.dumps({"error": ONE_CALL_PER_TURN})})

        self._threads.runs.submit_tool_outputs(
            run_id=state.run_id,
            thread_id=state.thread_id,
            tool_outputs=outputs,
        )
        return {
            "pending_tool_calls": [],
            "tool_calls_resolved": state.tool_calls_resolved + 1,
            "status": RunStatus.QUEUED.value,
        }

    def _fetch_reply_node(self, state: RunState) -> Dict[str, Any]:
        page = self._threads.messages.list(thread_id=state.thread_id, order="desc", limit=1)
        latest = (getattr(page, "data", None) or [None])[0]
        text = first_text_block(latest) if latest is not None else None
        if not text:
            raise ProviderError("No response content from assistant")
        return {"reply": text}

    def _required_tool_calls(self, run) -> List[ToolCall]:
        action = getattr(run, "required_action", None)
        if action is None or getattr(action, "type", None) != "submit_tool_outputs":
            raise ProviderError("Run requires an action that cannot be handled")
        tool_calls = getattr(action.submit_tool_outputs, "tool_calls", None) or []
        if not tool_calls:
            raise ProviderError("Run requires tool outputs but listed no tool calls")
        return [
            ToolCall(name=call.function.name, arguments=call.function.arguments, id=call.id)
            for call in tool_calls
        ]

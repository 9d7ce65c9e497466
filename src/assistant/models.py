"""Value types for runs, tool calls, tool outputs and messages.

These decouple the coordinator from any particular SDK: service adapters
convert their responses into these dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RunStatus(str, Enum):
    """Remote run lifecycle states."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"


# Still moving on its own; keep polling
PENDING_STATUSES: frozenset[RunStatus] = frozenset({RunStatus.QUEUED, RunStatus.IN_PROGRESS})

# A run in one of these blocks a new run on the same thread
ACTIVE_STATUSES: frozenset[RunStatus] = frozenset({
    RunStatus.REQUIRES_ACTION,
    RunStatus.QUEUED,
    RunStatus.IN_PROGRESS,
    RunStatus.CANCELLING,
})

SUBMIT_TOOL_OUTPUTS = "submit_tool_outputs"


@dataclass
class ToolCall:
    """A request to execute one function, embedded in a requires_action run."""

    id: str
    function_name: str
    arguments_json: str = "{}"


@dataclass
class ToolOutput:
    """The result for one tool call, matched by id."""

    tool_call_id: str
    output: str

    def to_dict(self) -> dict[str, str]:
        return {"tool_call_id": self.tool_call_id, "output": self.output}


@dataclass
class Run:
    """One execution attempt of an assistant on a thread.

    `tool_calls` is only populated when status is requires_action with
    action type submit_tool_outputs, and keeps the service's order.
    """

    id: str
    thread_id: str
    status: RunStatus
    required_action_type: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def requires_tool_outputs(self) -> bool:
        return (
            self.status == RunStatus.REQUIRES_ACTION
            and self.required_action_type == SUBMIT_TOOL_OUTPUTS
        )


@dataclass
class Message:
    """A thread message; `texts` holds its text segments in order."""

    id: str
    role: str
    texts: list[str] = field(default_factory=list)

    @property
    def first_text(self) -> str:
        return self.texts[0] if self.texts else ""


@dataclass
class Session:
    """Binding of an opaque session id to one conversation thread."""

    session_id: str
    thread_id: str


@dataclass
class AssistantInfo:
    """Remote assistant definition, as far as the runner cares."""

    id: str
    name: str
    owner_key: str | None
    tools: list[dict[str, Any]] = field(default_factory=list)

    @property
    def function_names(self) -> list[str]:
        return [
            tool["function"]["name"]
            for tool in self.tools
            if tool.get("type") == "function" and tool.get("function")
        ]


@dataclass
class UIAction:
    """Notification for a UI-signaling tool call (never dispatched)."""

    action: str
    action_args: Any

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "actionArgs": self.action_args}

"""Testing utilities for the run coordinator and function tooling.

Provides deterministic time control and in-memory stand-ins for the remote
assistant service, so tests never sleep for real or touch the network.

Usage:
    from tests.testing_utils import FakeRunService, VirtualClock

    clock = VirtualClock()
    coordinator = RunCoordinator(..., sleep=clock.sleep, clock=clock.time)

    service = FakeRunService()
    service.queue_run(
        [ToolCall("c1", "getCurrentDateString")],
        RunStatus.COMPLETED,
        reply="Today is Monday",
    )
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, Union

from src.assistant.models import (
    SUBMIT_TOOL_OUTPUTS,
    AssistantInfo,
    Message,
    Run,
    RunStatus,
    ToolCall,
    ToolOutput,
)
from src.tools.errors import AssistantNotFoundError


class ClockProtocol(Protocol):
    """What the coordinator needs from a clock."""

    def time(self) -> float:
        """Get current time in seconds."""
        ...

    def sleep(self, seconds: float) -> None:
        """Sleep for the given duration."""
        ...


@dataclass
class VirtualClock:
    """Deterministic clock for testing.

    Time only moves when advance() or sleep() is called, so polling loops
    finish instantly and deadlines are exact.

    Example:
        clock = VirtualClock()
        clock.sleep(0.5)
        assert clock.time() == 0.5
        assert clock.sleeps == [0.5]
    """

    _time: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def time(self) -> float:
        """Get current virtual time."""
        return self._time

    def sleep(self, seconds: float) -> None:
        """Record the sleep and advance time by it."""
        self.sleeps.append(seconds)
        self.advance(seconds)

    def advance(self, seconds: float) -> None:
        """Advance virtual time by the given amount.

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._time += seconds


# A scripted run step: a status, or a batch of tool calls (requires_action)
Step = Union[RunStatus, list[ToolCall]]


@dataclass
class ScriptedRun:
    """A run whose states are played back from a script."""

    id: str
    thread_id: str
    steps: list[Step]
    reply: str
    index: int = 0
    started: bool = False
    cancelled: bool = False
    replied: bool = False

    @property
    def current(self) -> Step:
        return self.steps[self.index]


class FakeRunService:
    """In-memory RunService playing back scripted runs.

    Each create_run() takes the next script queued with queue_run(); with
    none queued the run simply completes. A pending step advances on every
    get_run(); a requires_action step advances only when outputs are
    submitted. The last step repeats forever.
    """

    def __init__(self, default_reply: str = "Hello from the assistant") -> None:
        self.default_reply = default_reply
        self.messages: dict[str, list[Message]] = {}
        self.runs: dict[str, ScriptedRun] = {}
        self.thread_runs: dict[str, list[str]] = {}
        self.submissions: list[list[ToolOutput]] = []
        self.cancelled: list[str] = []
        self.get_run_calls = 0
        self._scripts: list[tuple[list[Step], str]] = []
        self._ids = itertools.count(1)

    def queue_run(self, *steps: Step, reply: str | None = None) -> None:
        """Script the next run that gets created."""
        self._scripts.append((list(steps), reply if reply is not None else self.default_reply))

    # RunService -------------------------------------------------------------

    def create_thread(self) -> str:
        thread_id = f"thread_{next(self._ids)}"
        self.messages[thread_id] = []
        self.thread_runs[thread_id] = []
        return thread_id

    def create_message(self, thread_id: str, role: str, text: str) -> None:
        self.messages[thread_id].append(
            Message(id=f"msg_{next(self._ids)}", role=role, texts=[text])
        )

    def create_run(self, assistant_id: str, thread_id: str) -> Run:
        steps, reply = self._scripts.pop(0) if self._scripts else ([RunStatus.COMPLETED], self.default_reply)
        scripted = ScriptedRun(id=f"run_{next(self._ids)}", thread_id=thread_id, steps=steps, reply=reply)
        self.runs[scripted.id] = scripted
        self.thread_runs[thread_id].append(scripted.id)
        return Run(id=scripted.id, thread_id=thread_id, status=RunStatus.QUEUED)

    def get_run(self, thread_id: str, run_id: str) -> Run:
        self.get_run_calls += 1
        scripted = self.runs[run_id]
        run = self._materialize(scripted)
        if run.is_pending and scripted.index < len(scripted.steps) - 1:
            scripted.index += 1
        return run

    def submit_tool_outputs(
        self, thread_id: str, run_id: str, outputs: list[ToolOutput]
    ) -> Run:
        scripted = self.runs[run_id]
        if not isinstance(scripted.current, list):
            raise AssertionError(f"Run {run_id} is not waiting for tool outputs")
        self.submissions.append(list(outputs))
        if scripted.index < len(scripted.steps) - 1:
            scripted.index += 1
        return self._materialize(scripted)

    def cancel_run(self, thread_id: str, run_id: str) -> Run:
        self.cancelled.append(run_id)
        self.runs[run_id].cancelled = True
        return self._materialize(self.runs[run_id])

    def list_runs(self, thread_id: str) -> list[Run]:
        return [
            self._materialize(self.runs[run_id])
            for run_id in reversed(self.thread_runs.get(thread_id, []))
        ]

    def list_messages(self, thread_id: str) -> list[Message]:
        return list(reversed(self.messages.get(thread_id, [])))

    # Helpers ----------------------------------------------------------------

    def user_messages(self, thread_id: str) -> list[str]:
        return [m.first_text for m in self.messages[thread_id] if m.role == "user"]

    def _materialize(self, scripted: ScriptedRun) -> Run:
        if scripted.cancelled:
            return Run(id=scripted.id, thread_id=scripted.thread_id, status=RunStatus.CANCELLED)
        step = scripted.current
        if isinstance(step, list):
            return Run(
                id=scripted.id,
                thread_id=scripted.thread_id,
                status=RunStatus.REQUIRES_ACTION,
                required_action_type=SUBMIT_TOOL_OUTPUTS,
                tool_calls=list(step),
            )
        if step == RunStatus.COMPLETED and not scripted.replied:
            scripted.replied = True
            self.messages[scripted.thread_id].append(
                Message(id=f"msg_{next(self._ids)}", role="assistant", texts=[scripted.reply])
            )
        return Run(id=scripted.id, thread_id=scripted.thread_id, status=step)


class FakeAssistantStore:
    """In-memory AssistantStore keyed by owner."""

    def __init__(self) -> None:
        self.assistants: dict[str, AssistantInfo] = {}
        self._ids = itertools.count(1)

    def declare(self, owner_key: str, *names: str) -> AssistantInfo:
        """Create the owner's assistant with minimal function tools."""
        info = self.create_or_find(owner_key)
        for name in names:
            self.add_function(owner_key, tool_schema(name))
        return info

    def find(self, owner_key: str) -> AssistantInfo | None:
        return self.assistants.get(owner_key)

    def require(self, owner_key: str) -> AssistantInfo:
        info = self.find(owner_key)
        if info is None:
            raise AssistantNotFoundError(owner_key)
        return info

    def list_assistants(self) -> list[AssistantInfo]:
        return list(self.assistants.values())

    def create_or_find(
        self,
        owner_key: str,
        *,
        name: str | None = None,
        instructions: str | None = None,
        model: str | None = None,
        description: str | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> AssistantInfo:
        if owner_key not in self.assistants:
            self.assistants[owner_key] = AssistantInfo(
                id=f"asst_{next(self._ids)}",
                name=name or "Custom Assistant",
                owner_key=owner_key,
                tools=list(tools or []),
            )
        return self.assistants[owner_key]

    def delete(self, owner_key: str) -> int:
        return 1 if self.assistants.pop(owner_key, None) is not None else 0

    def list_function_names(self, owner_key: str) -> list[str]:
        return self.require(owner_key).function_names

    def add_function(self, owner_key: str, schema: dict[str, Any]) -> bool:
        info = self.require(owner_key)
        if schema["function"]["name"] in info.function_names:
            return False
        info.tools.append(schema)
        return True

    def remove_function(self, owner_key: str, name: str) -> bool:
        info = self.require(owner_key)
        if name not in info.function_names:
            return False
        info.tools = [t for t in info.tools if t.get("function", {}).get("name") != name]
        return True


def tool_schema(name: str, properties: dict[str, Any] | None = None) -> dict[str, Any]:
    """Minimal OpenAI tool schema for `name`."""
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": f"Test function {name}",
            "parameters": {
                "type": "object",
                "properties": properties or {},
                "required": list(properties or {}),
            },
        },
    }


def function_source(
    name: str,
    body: str = "return 'ok'",
    exported_name: str | None = None,
    schema_name: str | None = None,
    preamble: str = "",
) -> str:
    """Module text that follows the function export contract.

    exported_name/schema_name let tests break the contract on purpose.
    """
    options = tool_schema(schema_name or name)
    return (
        f"{preamble}\n"
        f"functionName = {exported_name or name!r}\n\n"
        f"functionOptions = {options!r}\n\n\n"
        f"def {name}(**kwargs):\n"
        f"    {body}\n"
    )


def write_function(directory: Path, name: str, source: str | None = None, **kwargs: Any) -> Path:
    """Write a function module into `directory` and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.py"
    path.write_text(source if source is not None else function_source(name, **kwargs))
    return path

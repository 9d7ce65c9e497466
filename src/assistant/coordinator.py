"""Run Coordinator - drives one user turn to a terminal run state.

State machine per turn:

    Idle ──post message, create run──▶ Polling ◀──submit outputs── ActionRequired
      │                                   │  ▲                          ▲
      └──attach to active run─────────────┘  └── requires_action ───────┘
                                          │
                                          └── any other status ──▶ Terminal

Polling is bounded by poll_interval and max_wait (RunTimeoutError). Tool
calls in one action batch run sequentially in array order, and every call
yields exactly one output with its id, failures included, so the run is
never left waiting on a missing output.

Usage:
    coordinator = RunCoordinator(run_service, assistants, registry, loader, sessions)
    reply = coordinator.handle_user_message("alice", session_id, "hello")
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from ..tools.errors import (
    MESSAGE_EXECUTION_FAILED,
    MESSAGE_FUNCTION_NOT_FOUND,
    MESSAGE_INVALID_ARGUMENTS,
    RunTimeoutError,
    ToolkitError,
    tool_failure,
    tool_success,
)
from ..tools.loader import FunctionLoader
from ..tools.registry import FunctionRegistry
from .event_log import EventLogger
from .models import Run, RunStatus, ToolCall, ToolOutput, UIAction
from .service import AssistantStore, RunService
from .sessions import SessionManager

if TYPE_CHECKING:
    from ..config_schema import AppConfig

logger = logging.getLogger(__name__)

UIActionHandler = Callable[[UIAction], None]


@dataclass
class CoordinatorSettings:
    """Tunables for polling and tool dispatch."""

    poll_interval: float = 0.5
    max_wait: float = 120.0
    cancel_on_timeout: bool = True
    ui_action_prefix: str = "ui_"
    self_extension_function: str = "createNewFunction"
    settle_delay: float = 0.5

    @classmethod
    def from_config(cls, config: AppConfig | None = None) -> "CoordinatorSettings":
        """Settings from a validated config (the loaded one by default)."""
        if config is None:
            from ..config import get_validated_config

            config = get_validated_config()
        return cls(
            poll_interval=config.runs.poll_interval_seconds,
            max_wait=config.runs.max_wait_seconds,
            cancel_on_timeout=config.runs.cancel_on_timeout,
            ui_action_prefix=config.functions.ui_action_prefix,
            self_extension_function=config.functions.self_extension_function,
            settle_delay=config.functions.settle_delay_seconds,
        )


def serialize_result(result: Any) -> str:
    """Encode a callable's return value as a tool output string."""
    if isinstance(result, str):
        return result
    if result is None:
        return tool_success()
    return json.dumps(result, default=str)


class RunCoordinator:
    """Orchestrates runs and tool calls for every session of the process."""

    def __init__(
        self,
        run_service: RunService,
        assistants: AssistantStore,
        registry: FunctionRegistry,
        loader: FunctionLoader,
        sessions: SessionManager,
        settings: CoordinatorSettings | None = None,
        event_log: EventLogger | None = None,
        on_ui_action: UIActionHandler | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.run_service = run_service
        self.assistants = assistants
        self.registry = registry
        self.loader = loader
        self.sessions = sessions
        self.settings = settings or CoordinatorSettings()
        self.event_log = event_log
        self.on_ui_action = on_ui_action
        self._sleep = sleep
        self._clock = clock

    # -------------------------------------------------------------------------
    # Turn handling
    # -------------------------------------------------------------------------

    def handle_user_message(self, owner_key: str, session_id: str, text: str) -> str:
        """Process one user turn and return the assistant's reply text.

        Raises:
            ValueError: If text is empty.
            AssistantNotFoundError: If the owner has no assistant.
            RunServiceError: If the remote service fails.
            RunTimeoutError: If a run stays queued/in_progress too long.
        """
        if not text or not text.strip():
            raise ValueError("Message content must be non-empty")

        session = self.sessions.get_or_create(session_id)
        thread_id = session.thread_id

        run = self.get_active_run(thread_id)
        if run is None:
            assistant = self.assistants.require(owner_key)
            self.run_service.create_message(thread_id, "user", text)
            self._log("message_posted", thread_id=thread_id, session_id=session_id)
            run = self.run_service.create_run(assistant.id, thread_id)
            self._log("run_created", thread_id=thread_id, run_id=run.id)
        else:
            logger.warning(
                "Thread %s already has active run %s (%s); message not posted: %r",
                thread_id, run.id, run.status.value, text,
            )
            self._log(
                "run_attached",
                thread_id=thread_id,
                run_id=run.id,
                status=run.status.value,
                dropped_text=text,
            )

        run = self.wait_until_next_step(thread_id, run)
        while run.requires_tool_outputs:
            run = self.process_required_action(owner_key, thread_id, run)
            run = self.wait_until_next_step(thread_id, run)

        if run.status != RunStatus.COMPLETED:
            logger.warning("Run %s ended with status %s", run.id, run.status.value)
        self._log("run_finished", thread_id=thread_id, run_id=run.id, status=run.status.value)
        return self.latest_reply(thread_id)

    def get_active_run(self, thread_id: str) -> Run | None:
        """The thread's first run still in an active state, if any."""
        for run in self.run_service.list_runs(thread_id):
            if run.is_active:
                return run
        return None

    def wait_until_next_step(self, thread_id: str, run: Run) -> Run:
        """Poll until the run leaves queued/in_progress.

        Always fetches the run at least once, so a stale in-hand status is
        never trusted.
        """
        started = self._clock()
        deadline = started + self.settings.max_wait
        latest = self.run_service.get_run(thread_id, run.id)
        while latest.is_pending:
            if self._clock() >= deadline:
                self._handle_timeout(thread_id, latest, self._clock() - started)
            self._sleep(self.settings.poll_interval)
            latest = self.run_service.get_run(thread_id, run.id)
        return latest

    def _handle_timeout(self, thread_id: str, run: Run, waited: float) -> None:
        if self.settings.cancel_on_timeout:
            logger.warning("Cancelling run %s after %.1fs", run.id, waited)
            self.run_service.cancel_run(thread_id, run.id)
        self._log("run_timeout", thread_id=thread_id, run_id=run.id, waited=waited)
        raise RunTimeoutError(run.id, waited, run.status.value)

    def latest_reply(self, thread_id: str) -> str:
        """First text segment of the thread's most recent message."""
        messages = self.run_service.list_messages(thread_id)
        if not messages:
            return ""
        return messages[0].first_text

    # -------------------------------------------------------------------------
    # Tool calls
    # -------------------------------------------------------------------------

    def process_required_action(self, owner_key: str, thread_id: str, run: Run) -> Run:
        """Answer one requires_action batch and submit it."""
        logger.info(
            "Run %s requires %d tool output(s): %s",
            run.id, len(run.tool_calls), [tc.function_name for tc in run.tool_calls],
        )
        outputs = self.build_tool_outputs(owner_key, run.tool_calls)
        return self.run_service.submit_tool_outputs(thread_id, run.id, outputs)

    def build_tool_outputs(self, owner_key: str, tool_calls: list[ToolCall]) -> list[ToolOutput]:
        """One output per call, same order, matching ids."""
        outputs: list[ToolOutput] = []
        for call in tool_calls:
            output = self.dispatch_tool_call(owner_key, call)
            outputs.append(ToolOutput(tool_call_id=call.id, output=output))
        return outputs

    def dispatch_tool_call(self, owner_key: str, call: ToolCall) -> str:
        """Execute one tool call and return its output string. Never raises."""
        try:
            args: Any = json.loads(call.arguments_json or "{}")
        except json.JSONDecodeError:
            logger.error("Invalid arguments for %s: %r", call.function_name, call.arguments_json)
            return self._record(call, tool_failure(MESSAGE_INVALID_ARGUMENTS), success=False)

        if call.function_name.startswith(self.settings.ui_action_prefix):
            self._emit_ui_action(UIAction(action=call.function_name, action_args=args))
            return self._record(call, tool_success(), success=True)

        func = self.registry.lookup(owner_key, call.function_name)
        if func is None:
            logger.error("Function '%s' not found for owner %s", call.function_name, owner_key)
            return self._record(call, tool_failure(MESSAGE_FUNCTION_NOT_FOUND), success=False)

        try:
            result = self._invoke(func, args)
        except (Exception, SystemExit):  # tool code can raise anything
            logger.exception("Error executing function %s", call.function_name)
            return self._record(call, tool_failure(MESSAGE_EXECUTION_FAILED), success=False)

        if (
            call.function_name == self.settings.self_extension_function
            and isinstance(args, dict)
            and args.get("name")
        ):
            self.activate_authored_function(owner_key, str(args["name"]))

        return self._record(call, serialize_result(result), success=True)

    @staticmethod
    def _invoke(func: Callable[..., Any], args: Any) -> Any:
        if isinstance(args, dict):
            result = func(**args)
        else:
            result = func(args)
        if inspect.isawaitable(result):
            result = asyncio.run(_await(result))
        return result

    def activate_authored_function(self, owner_key: str, name: str) -> bool:
        """Load, register and publish a function that was just authored.

        Failures are logged; they never change the authoring call's result,
        and an invalid module leaves the registry untouched.
        """
        if self.settings.settle_delay > 0:
            self._sleep(self.settings.settle_delay)
        try:
            with self.registry.owner_lock(owner_key):
                descriptor = self.loader.load(name)
                self.registry.add(owner_key, descriptor)
            self.assistants.add_function(owner_key, descriptor.schema.to_dict())
        except ToolkitError as e:
            logger.error("Could not activate authored function %s: %s", name, e)
            self._log("function_activation_failed", owner_key=owner_key, function=name, error=str(e))
            return False
        self._log("function_activated", owner_key=owner_key, function=name)
        return True

    def _emit_ui_action(self, action: UIAction) -> None:
        logger.info("UI action: %s", json.dumps(action.to_dict(), default=str))
        self._log("ui_action", **action.to_dict())
        if self.on_ui_action is not None:
            try:
                self.on_ui_action(action)
            except Exception:
                logger.exception("UI action handler failed for %s", action.action)

    def _record(self, call: ToolCall, output: str, success: bool) -> str:
        self._log(
            "tool_call",
            tool_call_id=call.id,
            function=call.function_name,
            success=success,
        )
        return output

    def _log(self, event_type: str, **data: Any) -> None:
        if self.event_log is not None:
            self.event_log.log(event_type, data)


async def _await(awaitable: Any) -> Any:
    return await awaitable

"""Interfaces of the remote collaborators.

The coordinator only talks to these protocols. The OpenAI-backed
implementations live in openai_service.py; tests use in-memory fakes.
Every method is a network call that may fail with RunServiceError.
"""

from __future__ import annotations

from typing import Any, Protocol

from .models import AssistantInfo, Message, Run, ToolOutput


class RunService(Protocol):
    """Threads, messages and runs."""

    def create_thread(self) -> str:
        """Create a thread and return its id."""
        ...

    def create_message(self, thread_id: str, role: str, text: str) -> None:
        ...

    def create_run(self, assistant_id: str, thread_id: str) -> Run:
        ...

    def get_run(self, thread_id: str, run_id: str) -> Run:
        ...

    def submit_tool_outputs(
        self, thread_id: str, run_id: str, outputs: list[ToolOutput]
    ) -> Run:
        ...

    def cancel_run(self, thread_id: str, run_id: str) -> Run:
        ...

    def list_runs(self, thread_id: str) -> list[Run]:
        """Runs on the thread, most recent first."""
        ...

    def list_messages(self, thread_id: str) -> list[Message]:
        """Messages on the thread, most recent first."""
        ...


class AssistantStore(Protocol):
    """Remote assistant definitions, keyed by owner."""

    def find(self, owner_key: str) -> AssistantInfo | None:
        ...

    def require(self, owner_key: str) -> AssistantInfo:
        """Like find(), but raises AssistantNotFoundError."""
        ...

    def list_assistants(self) -> list[AssistantInfo]:
        ...

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
        ...

    def delete(self, owner_key: str) -> int:
        """Delete the owner's assistants; returns how many were deleted."""
        ...

    def list_function_names(self, owner_key: str) -> list[str]:
        ...

    def add_function(self, owner_key: str, schema: dict[str, Any]) -> bool:
        """Append a function tool; False if one with that name exists."""
        ...

    def remove_function(self, owner_key: str, name: str) -> bool:
        """Remove a function tool; False if it was not declared."""
        ...

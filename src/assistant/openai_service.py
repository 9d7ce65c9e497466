"""OpenAI Assistants API adapters for RunService and AssistantStore.

Thin translation layer: SDK responses become the dataclasses in models.py
and SDK exceptions become RunServiceError. No retries happen here; a
failed call fails the current turn.

Assistants are matched to owners through their `metadata.created_by`.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Generator

import openai

from ..tools.errors import AssistantNotFoundError, RunServiceError
from .models import AssistantInfo, Message, Run, RunStatus, ToolCall, ToolOutput

logger = logging.getLogger(__name__)

OWNER_METADATA_KEY = "created_by"


@contextmanager
def _service_call(operation: str) -> Generator[None, None, None]:
    """Convert SDK failures into RunServiceError."""
    try:
        yield
    except openai.OpenAIError as e:
        logger.error("%s failed: %s", operation, e)
        raise RunServiceError(f"{operation} failed: {e}") from e


def _to_dict(obj: Any) -> dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    result: dict[str, Any] = obj.model_dump(exclude_none=True)
    return result


def create_client(
    api_key_env: str = "OPENAI_API_KEY", base_url: str | None = None
) -> openai.OpenAI:
    """Build an SDK client from the environment."""
    return openai.OpenAI(api_key=os.getenv(api_key_env), base_url=base_url)


def run_from_sdk(obj: Any) -> Run:
    """Convert an SDK run object into a Run."""
    action_type: str | None = None
    tool_calls: list[ToolCall] = []
    required = getattr(obj, "required_action", None)
    if required is not None:
        action_type = required.type
        submit = getattr(required, "submit_tool_outputs", None)
        if submit is not None:
            tool_calls = [
                ToolCall(
                    id=tc.id,
                    function_name=tc.function.name,
                    arguments_json=tc.function.arguments or "{}",
                )
                for tc in submit.tool_calls
            ]
    return Run(
        id=obj.id,
        thread_id=obj.thread_id,
        status=RunStatus(obj.status),
        required_action_type=action_type,
        tool_calls=tool_calls,
    )


def message_from_sdk(obj: Any) -> Message:
    """Convert an SDK message object into a Message (text blocks only)."""
    texts = [
        block.text.value
        for block in (obj.content or [])
        if getattr(block, "type", None) == "text" and getattr(block, "text", None)
    ]
    return Message(id=obj.id, role=obj.role, texts=texts)


def assistant_from_sdk(obj: Any) -> AssistantInfo:
    metadata = obj.metadata or {}
    return AssistantInfo(
        id=obj.id,
        name=obj.name or "",
        owner_key=metadata.get(OWNER_METADATA_KEY),
        tools=[_to_dict(t) for t in (obj.tools or [])],
    )


class OpenAIRunService:
    """RunService backed by the Assistants API threads and runs."""

    def __init__(self, client: openai.OpenAI) -> None:
        self.client = client

    def create_thread(self) -> str:
        with _service_call("create_thread"):
            thread = self.client.beta.threads.create()
        thread_id: str = thread.id
        return thread_id

    def create_message(self, thread_id: str, role: str, text: str) -> None:
        with _service_call("create_message"):
            self.client.beta.threads.messages.create(thread_id, role=role, content=text)

    def create_run(self, assistant_id: str, thread_id: str) -> Run:
        with _service_call("create_run"):
            run = self.client.beta.threads.runs.create(
                thread_id=thread_id, assistant_id=assistant_id
            )
        return run_from_sdk(run)

    def get_run(self, thread_id: str, run_id: str) -> Run:
        with _service_call("get_run"):
            run = self.client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
        return run_from_sdk(run)

    def submit_tool_outputs(
        self, thread_id: str, run_id: str, outputs: list[ToolOutput]
    ) -> Run:
        with _service_call("submit_tool_outputs"):
            run = self.client.beta.threads.runs.submit_tool_outputs(
                run_id,
                thread_id=thread_id,
                tool_outputs=[o.to_dict() for o in outputs],
            )
        return run_from_sdk(run)

    def cancel_run(self, thread_id: str, run_id: str) -> Run:
        with _service_call("cancel_run"):
            run = self.client.beta.threads.runs.cancel(run_id, thread_id=thread_id)
        return run_from_sdk(run)

    def list_runs(self, thread_id: str) -> list[Run]:
        with _service_call("list_runs"):
            page = self.client.beta.threads.runs.list(thread_id)
        return [run_from_sdk(r) for r in page.data]

    def list_messages(self, thread_id: str) -> list[Message]:
        with _service_call("list_messages"):
            page = self.client.beta.threads.messages.list(thread_id, order="desc")
        return [message_from_sdk(m) for m in page.data]


class OpenAIAssistantStore:
    """AssistantStore backed by the Assistants API."""

    def __init__(self, client: openai.OpenAI, default_model: str, list_limit: int = 100) -> None:
        self.client = client
        self.default_model = default_model
        self.list_limit = list_limit

    def _list_raw(self) -> list[Any]:
        with _service_call("list_assistants"):
            page = self.client.beta.assistants.list(order="desc", limit=self.list_limit)
        return list(page.data)

    def list_assistants(self) -> list[AssistantInfo]:
        return [assistant_from_sdk(a) for a in self._list_raw()]

    def find(self, owner_key: str) -> AssistantInfo | None:
        for assistant in self.list_assistants():
            if assistant.owner_key == owner_key:
                return assistant
        return None

    def require(self, owner_key: str) -> AssistantInfo:
        assistant = self.find(owner_key)
        if assistant is None:
            raise AssistantNotFoundError(owner_key)
        return assistant

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
        existing = self.find(owner_key)
        if existing is not None:
            return existing

        payload: dict[str, Any] = {
            "name": name or "Custom Assistant",
            "instructions": instructions or "Custom instructions for the assistant",
            "model": model or self.default_model,
            "description": description or "",
            "metadata": {OWNER_METADATA_KEY: owner_key},
        }
        if tools:
            payload["tools"] = tools
        with _service_call("create_assistant"):
            created = self.client.beta.assistants.create(**payload)
        logger.info("Created assistant %s for owner %s", created.id, owner_key)
        return assistant_from_sdk(created)

    def delete(self, owner_key: str) -> int:
        deleted = 0
        for assistant in self.list_assistants():
            if assistant.owner_key != owner_key:
                continue
            with _service_call("delete_assistant"):
                self.client.beta.assistants.delete(assistant.id)
            deleted += 1
        if not deleted:
            logger.info("Could not find assistant for owner %s", owner_key)
        return deleted

    def list_function_names(self, owner_key: str) -> list[str]:
        return self.require(owner_key).function_names

    def add_function(self, owner_key: str, schema: dict[str, Any]) -> bool:
        assistant = self.require(owner_key)
        name = schema["function"]["name"]
        if name in assistant.function_names:
            logger.info("Function %s already exists in the assistant", name)
            return False
        with _service_call("update_assistant"):
            self.client.beta.assistants.update(
                assistant.id, tools=[*assistant.tools, schema]
            )
        logger.info("Function %s added to assistant %s", name, assistant.id)
        return True

    def remove_function(self, owner_key: str, name: str) -> bool:
        assistant = self.require(owner_key)
        if name not in assistant.function_names:
            logger.info("Function %s not found in the assistant", name)
            return False
        remaining = [
            tool for tool in assistant.tools
            if not (tool.get("type") == "function" and tool["function"]["name"] == name)
        ]
        with _service_call("update_assistant"):
            self.client.beta.assistants.update(assistant.id, tools=remaining)
        logger.info("Function %s removed from assistant %s", name, assistant.id)
        return True

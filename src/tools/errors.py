"""Error kinds and tool-output payload conventions.

Two halves:

1. Exceptions raised inside the runner (loading, authoring, polling).
   Every exception carries a machine-readable ErrorCode and an
   ErrorCategory so callers can switch on them.
2. Payload factories for tool outputs. A failed tool call is never
   omitted from a batch; it is encoded as a JSON string instead.

Usage:
    from src.tools.errors import FunctionNotFoundError, tool_failure

    raise FunctionNotFoundError("ghostFn")
    output = tool_failure("Function not found")
    # '{"success":false,"message":"Function not found"}'
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories for error classification.

    - RESOURCE: Something that should exist does not
    - VALIDATION: A module or argument failed a contract check
    - EXECUTION: Runtime problems (a callable threw, a write failed)
    - SYSTEM: Remote service or environment problems
    """

    RESOURCE = "resource"
    VALIDATION = "validation"
    EXECUTION = "execution"
    SYSTEM = "system"


class ErrorCode(str, Enum):
    """Specific error codes for programmatic handling."""

    # Resource errors
    NOT_FOUND = "not_found"
    ASSISTANT_NOT_FOUND = "assistant_not_found"

    # Validation errors
    INVALID_MODULE = "invalid_module"
    INVALID_ARGUMENT = "invalid_argument"

    # Execution errors
    EXECUTION_FAILED = "execution_failed"
    CREATION_FAILED = "creation_failed"
    DEPENDENCY_INSTALL_FAILED = "dependency_install_failed"

    # System errors
    SERVICE_ERROR = "service_error"
    TIMEOUT = "timeout"


class ToolkitError(Exception):
    """Base class for every error raised by the runner."""

    code: ErrorCode = ErrorCode.EXECUTION_FAILED
    category: ErrorCategory = ErrorCategory.EXECUTION

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "error": str(self),
            "code": self.code.value,
            "category": self.category.value,
        }


class FunctionNotFoundError(ToolkitError):
    """A function is missing from the registry or from the functions directory."""

    code = ErrorCode.NOT_FOUND
    category = ErrorCategory.RESOURCE

    def __init__(self, name: str, detail: str | None = None) -> None:
        self.name = name
        super().__init__(detail or f"Function '{name}' not found")


class AssistantNotFoundError(ToolkitError):
    """No remote assistant is defined for an owner key."""

    code = ErrorCode.ASSISTANT_NOT_FOUND
    category = ErrorCategory.RESOURCE

    def __init__(self, owner_key: str) -> None:
        self.owner_key = owner_key
        super().__init__(f"Assistant for owner '{owner_key}' not found")


class InvalidModuleError(ToolkitError):
    """A function module does not satisfy the export contract."""

    code = ErrorCode.INVALID_MODULE
    category = ErrorCategory.VALIDATION


class DependencyInstallError(ToolkitError):
    """A dependency of a function module could not be installed."""

    code = ErrorCode.DEPENDENCY_INSTALL_FAILED
    category = ErrorCategory.EXECUTION

    def __init__(self, package: str, reason: str) -> None:
        self.package = package
        self.reason = reason
        super().__init__(f"Failed to install '{package}': {reason}")


class FunctionExecutionError(ToolkitError):
    """A registered callable raised while handling a tool call."""

    code = ErrorCode.EXECUTION_FAILED
    category = ErrorCategory.EXECUTION


class CreationFailedError(ToolkitError):
    """Writing a new function module failed."""

    code = ErrorCode.CREATION_FAILED
    category = ErrorCategory.EXECUTION


class RunServiceError(ToolkitError):
    """The remote run/assistant service failed or was unreachable."""

    code = ErrorCode.SERVICE_ERROR
    category = ErrorCategory.SYSTEM


class RunTimeoutError(ToolkitError):
    """A run did not leave queued/in_progress before the poll deadline."""

    code = ErrorCode.TIMEOUT
    category = ErrorCategory.SYSTEM

    def __init__(self, run_id: str, waited: float, last_status: str) -> None:
        self.run_id = run_id
        self.waited = waited
        self.last_status = last_status
        super().__init__(
            f"Run {run_id} still '{last_status}' after {waited:.1f}s"
        )


# =============================================================================
# Tool output payloads
# =============================================================================

MESSAGE_FUNCTION_NOT_FOUND = "Function not found"
MESSAGE_EXECUTION_FAILED = "Error executing function"
MESSAGE_INVALID_ARGUMENTS = "Invalid function arguments"


@dataclass
class ToolPayload:
    """Result payload delivered to the run as a tool output string.

    Serialized compactly so the wire form is stable:
    {"success":false,"message":"Function not found"}
    """

    success: bool
    message: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        result: dict[str, object] = {"success": self.success}
        if self.message is not None:
            result["message"] = self.message
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


def tool_failure(message: str) -> str:
    """Serialized failure payload for a tool output."""
    return ToolPayload(success=False, message=message).to_json()


def tool_success() -> str:
    """Serialized trivial success payload."""
    return ToolPayload(success=True).to_json()

"""Tool schema and function descriptor types.

A function module declares its schema in OpenAI tool format:

    functionOptions = {
        "type": "function",
        "function": {
            "name": "getCurrentDateString",
            "description": "Returns the current date as a string.",
            "parameters": {"type": "object", "properties": {}, "required": []},
        },
    }

The parameter contract is advisory. The remote service enforces argument
shape before dispatch; the runner only checks that the schema parses and
that its name matches the registered name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field


class FunctionParameters(BaseModel):
    """JSON-schema style parameter contract."""

    model_config = ConfigDict(extra="allow")

    type: Literal["object"] = "object"
    properties: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class FunctionSpec(BaseModel):
    """The "function" part of a tool schema."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    description: str = ""
    parameters: FunctionParameters = Field(default_factory=FunctionParameters)


class ToolSchema(BaseModel):
    """A full tool schema as published to the assistant definition."""

    model_config = ConfigDict(extra="allow")

    type: Literal["function"] = "function"
    function: FunctionSpec

    @property
    def name(self) -> str:
        return self.function.name

    def to_dict(self) -> dict[str, Any]:
        """Plain dict for the remote API (drops unset optional keys)."""
        return self.model_dump(mode="json", exclude_none=True)


@dataclass
class FunctionDescriptor:
    """A loaded, runnable function: the loader's output and the registry's entry.

    Attributes:
        name: Registered name; equals schema.name
        schema: Validated tool schema
        func: The callable exported under `name`
        source_path: File the function was loaded from (None for in-process)
    """

    name: str
    schema: ToolSchema
    func: Callable[..., Any] = field(repr=False)
    source_path: Path | None = None

    def __post_init__(self) -> None:
        if self.schema.name != self.name:
            raise ValueError(
                f"Schema name '{self.schema.name}' does not match function name '{self.name}'"
            )

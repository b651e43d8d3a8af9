"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Core tool types: definitions, registrations, results and the ``tool`` decorator.

A tool handler is any async callable taking the raw arguments mapping and
returning a JSON-serializable value (or a string). Handlers signal failure by
raising; the registry turns the exception into a failed ``ToolResult``.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import ToolValidationError

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """
    Public description of one tool.

    Attributes:
        name: Unique registry key.
        description: Human-readable summary shown by ``tools/list``.
        input_schema: JSON Schema fragment for the arguments object.
        args_model: Optional pydantic model. When set, arguments are validated
            against it before the handler runs and ``input_schema`` defaults
            to the model's JSON schema.
    """

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=dict)
    args_model: type[BaseModel] | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Tool name must be non-empty")

    def schema(self) -> dict[str, Any]:
        if self.input_schema:
            body = self.input_schema
        elif self.args_model is not None:
            body = self.args_model.model_json_schema()
        else:
            body = {}
        return {"type": "object", **body}

    def required_params(self) -> list[str]:
        return list(self.schema().get("required", []))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.schema(),
        }

    def validate(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Return arguments with model defaults applied, or raise on mismatch."""
        if self.args_model is None:
            return arguments
        try:
            parsed = self.args_model.model_validate(arguments)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ToolValidationError(
                f"Invalid arguments for tool '{self.name}': {problems}"
            ) from e
        return parsed.model_dump()


@dataclass(frozen=True, slots=True)
class ToolRegistration:
    """A definition paired with the handler that implements it."""

    definition: ToolDefinition
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.definition.name


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of one executed tool call."""

    success: bool
    output: Any = None
    error_message: str | None = None


def as_async(fn: Callable[..., Any]) -> ToolHandler:
    """Wrap a sync callable so it runs in a worker thread."""
    if inspect.iscoroutinefunction(fn):
        return fn

    @functools.wraps(fn)
    async def _runner(arguments: dict[str, Any]) -> Any:
        return await asyncio.to_thread(fn, arguments)

    return _runner


def tool(
    *,
    name: str | None = None,
    description: str | None = None,
    input_schema: dict[str, Any] | None = None,
    args_model: type[BaseModel] | None = None,
) -> Callable[[Callable[..., Any]], ToolRegistration]:
    """
    Turn a handler function into a ``ToolRegistration``.

    Usage::

        @tool(name="echo", description="Return the arguments unchanged")
        async def echo(arguments: dict) -> dict:
            return arguments

        registry.register(echo.definition, echo.handler)
    """

    def _decorate(fn: Callable[..., Any]) -> ToolRegistration:
        doc = inspect.getdoc(fn) or ""
        definition = ToolDefinition(
            name=name or fn.__name__,
            description=description if description is not None else doc.split("\n", 1)[0],
            input_schema=dict(input_schema or {}),
            args_model=args_model,
        )
        return ToolRegistration(definition=definition, handler=as_async(fn))

    return _decorate

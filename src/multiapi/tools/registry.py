from __future__ import annotations
"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module implements the ToolRegistry for multiapi.
It maps tool names to (definition, handler) pairs, executes handlers with
concurrency limiting and an optional timeout, and discovers tools shipped by
integration packages through entry points.
"""

import asyncio
import logging
import time
from collections import deque
from contextlib import AbstractAsyncContextManager, nullcontext
from dataclasses import dataclass
from importlib import metadata as importlib_metadata
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from ..errors import (
    ToolAlreadyRegisteredError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from .base import ToolDefinition, ToolHandler, ToolRegistration, ToolResult

if TYPE_CHECKING:
    from .runtime import ToolRuntime

logger = logging.getLogger("multiapi.tools")


@dataclass(frozen=True, slots=True)
class ToolCallRecord:
    tool_name: str
    started_at_s: float
    ended_at_s: float
    ok: bool
    error: Optional[str] = None


class ToolRegistry:
    """
    Stores tools by name and provides safe async execution with:
      - optional per-tool concurrency limiting
      - registry-level default timeout (off unless configured)
      - argument validation for tools declaring a pydantic args model
      - plugin discovery via entry points

    Registering an existing name replaces the previous tool and logs a
    warning, unless ``reject_duplicates`` is set.
    """

    def __init__(
        self,
        *,
        max_concurrency: int | None = None,
        default_timeout_s: float | None = None,
        reject_duplicates: bool = False,
        record_limit: int = 1000,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        if default_timeout_s is not None and default_timeout_s <= 0:
            raise ValueError("default_timeout_s must be > 0")

        self._tools: Dict[str, ToolRegistration] = {}
        self._max_concurrency = max_concurrency
        self._sems: Dict[str, asyncio.Semaphore] = {}
        self._default_timeout_s = default_timeout_s
        self._reject_duplicates = reject_duplicates
        self._records: deque[ToolCallRecord] = deque(maxlen=record_limit)

    # ''''''''''''''''''''''''
    # Registration / discovery
    # ''''''''''''''''''''''''

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        name = definition.name
        if name in self._tools:
            if self._reject_duplicates:
                raise ToolAlreadyRegisteredError(f"Tool already registered: {name}")
            logger.warning("Tool %s already registered; replacing it", name)
        self._tools[name] = ToolRegistration(definition=definition, handler=handler)
        logger.info("Registered tool: %s", name)

    def register_many(self, registrations: Iterable[ToolRegistration]) -> None:
        for reg in registrations:
            self.register(reg.definition, reg.handler)

    def resolve(self, name: str) -> ToolRegistration | None:
        return self._tools.get(name)

    def get(self, name: str) -> ToolRegistration:
        try:
            return self._tools[name]
        except KeyError as e:
            raise ToolNotFoundError(f"Unknown tool: {name}") from e

    def list(self) -> List[ToolDefinition]:
        return [reg.definition for reg in self._tools.values()]

    def names(self) -> List[str]:
        return list(self._tools.keys())

    def has(self, name: str) -> bool:
        return name in self._tools

    def load_plugins(
        self,
        runtime: "ToolRuntime",
        *,
        entry_point_group: str = "multiapi.tools",
    ) -> int:
        """
        Load tools from Python entry points.

        Plugin pyproject.toml example:
          [project.entry-points."multiapi.tools"]
          weather = "my_pkg.weather:build_tools"

        Each entry point is a ``ToolRegistration`` or a factory called with the
        shared ``ToolRuntime`` that returns one registration or an iterable of
        them. Returns number of tools loaded.
        """
        loaded = 0
        for ep in importlib_metadata.entry_points(group=entry_point_group):
            obj = ep.load()
            produced = obj(runtime) if callable(obj) else obj
            if isinstance(produced, ToolRegistration):
                produced = [produced]

            try:
                regs = [r for r in produced if isinstance(r, ToolRegistration)]
            except TypeError:
                logger.warning("Entry point %s did not produce tools; skipping", ep.name)
                continue

            self.register_many(regs)
            loaded += len(regs)

        return loaded

    # '''''''''
    # Execution
    # '''''''''

    def _slot(self, name: str) -> AbstractAsyncContextManager[Any]:
        # Limits apply per tool name so a stalled tool never queues another.
        if self._max_concurrency is None:
            return nullcontext()
        sem = self._sems.get(name)
        if sem is None:
            sem = self._sems[name] = asyncio.Semaphore(self._max_concurrency)
        return sem

    async def call(
        self,
        name: str,
        arguments: Dict[str, Any],
        *,
        timeout_s: float | None = None,
    ) -> ToolResult:
        """
        Execute a registered tool by name.

        Unknown names raise ``ToolNotFoundError``. Everything the handler
        raises (including validation and timeout errors) is reported as a
        failed ``ToolResult`` instead.
        """
        reg = self.get(name)
        effective_timeout = timeout_s if timeout_s is not None else self._default_timeout_s
        started = time.time()

        async with self._slot(name):
            try:
                args = reg.definition.validate(arguments)
                if effective_timeout is not None:
                    try:
                        output = await asyncio.wait_for(reg.handler(args), timeout=effective_timeout)
                    except asyncio.TimeoutError as e:
                        raise ToolTimeoutError(
                            f"Tool '{name}' timed out after {effective_timeout} seconds."
                        ) from e
                else:
                    output = await reg.handler(args)
            except Exception as e:
                logger.error("Error in tool %s: %s", name, e)
                self._records.append(
                    ToolCallRecord(
                        tool_name=name,
                        started_at_s=started,
                        ended_at_s=time.time(),
                        ok=False,
                        error=str(e),
                    )
                )
                return ToolResult(success=False, error_message=str(e) or type(e).__name__)

        self._records.append(
            ToolCallRecord(
                tool_name=name,
                started_at_s=started,
                ended_at_s=time.time(),
                ok=True,
            )
        )
        return ToolResult(success=True, output=output)

    # '''''''''''''''''''''''
    # Observability
    # '''''''''''''''''''''''

    def recent_calls(self, limit: int = 100) -> List[ToolCallRecord]:
        return list(self._records)[-limit:]

    def list_tool_summaries(self) -> List[Dict[str, Any]]:
        """
        Lightweight listing for UIs / debugging.
        """
        return [
            {
                "name": reg.definition.name,
                "description": reg.definition.description,
                "requiredParams": reg.definition.required_params(),
            }
            for reg in self._tools.values()
        ]

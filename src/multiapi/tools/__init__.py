"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Tool definitions, registry and the runtime shared by handlers.
"""

from .base import (
    ToolDefinition,
    ToolHandler,
    ToolRegistration,
    ToolResult,
    as_async,
    tool,
)
from .coalescing import RequestCoalescer
from .registry import ToolCallRecord, ToolRegistry
from .runtime import ToolRuntime

__all__ = [
    "ToolDefinition",
    "ToolHandler",
    "ToolRegistration",
    "ToolResult",
    "as_async",
    "tool",
    "RequestCoalescer",
    "ToolCallRecord",
    "ToolRegistry",
    "ToolRuntime",
]

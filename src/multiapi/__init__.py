"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

multiapi: weather, finance and news APIs behind one tool-invocation protocol.

Quick start::

    from multiapi import Settings, build_runtime, tool
    from multiapi.mcp import MCPServer

    @tool(name="echo", description="Return the arguments unchanged")
    async def echo(arguments: dict) -> dict:
        return arguments

    runtime = build_runtime(Settings(), tools=[echo], load_plugins=False)
    MCPServer(runtime).run()  # starts on http://0.0.0.0:3000
"""

from .app import MultiAPIRuntime, build_runtime
from .cache import NO_EXPIRY, CacheStats, TTLCache
from .config import Settings
from .errors import (
    MultiAPIError,
    RateLimitExceededError,
    ToolAlreadyRegisteredError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
    ToolValidationError,
    UpstreamError,
)
from .ratelimit import FixedWindowRateLimiter, RateLimitPolicy
from .tools import (
    ToolDefinition,
    ToolRegistration,
    ToolRegistry,
    ToolResult,
    ToolRuntime,
    tool,
)

__all__ = [
    "MultiAPIRuntime",
    "build_runtime",
    "NO_EXPIRY",
    "CacheStats",
    "TTLCache",
    "Settings",
    "MultiAPIError",
    "RateLimitExceededError",
    "ToolAlreadyRegisteredError",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolTimeoutError",
    "ToolValidationError",
    "UpstreamError",
    "FixedWindowRateLimiter",
    "RateLimitPolicy",
    "ToolDefinition",
    "ToolRegistration",
    "ToolRegistry",
    "ToolResult",
    "ToolRuntime",
    "tool",
]

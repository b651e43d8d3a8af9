"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Exception hierarchy shared by the cache, rate limiter, registry and handlers.
"""

from __future__ import annotations


class MultiAPIError(Exception):
    """Base class for all errors raised by multiapi."""


class ToolError(MultiAPIError):
    """Base class for tool registration and execution errors."""


class ToolNotFoundError(ToolError):
    """Raised when a tool name is not registered."""


class ToolAlreadyRegisteredError(ToolError):
    """Raised when duplicate tool names are rejected by the registry."""


class ToolValidationError(ToolError):
    """Raised when tool arguments do not match the declared args model."""


class ToolTimeoutError(ToolError):
    """Raised when a tool call exceeds its timeout."""


class ToolExecutionError(ToolError):
    """Raised by handlers for expected, user-facing failures."""


class RateLimitExceededError(MultiAPIError):
    """
    Raised when a category has used up its fixed-window quota.

    Attributes:
        category: Rate limit category that rejected the call.
        retry_after_s: Whole seconds until the window resets.
    """

    def __init__(self, category: str, retry_after_s: int) -> None:
        super().__init__(
            f"Rate limit exceeded. Please wait {retry_after_s} seconds."
        )
        self.category = category
        self.retry_after_s = retry_after_s


class UpstreamError(MultiAPIError):
    """Raised when an external API call fails or returns an unexpected shape."""

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed policies for per-category request limits.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitPolicy:
    """Fixed-window quota: at most ``max_requests`` per ``window_s`` seconds."""

    max_requests: int = 100
    window_s: float = 60.0

    def __post_init__(self) -> None:
        if self.max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        if self.window_s <= 0:
            raise ValueError("window_s must be > 0")


def default_policies(
    *,
    max_requests: int = 100,
    window_s: float = 60.0,
    finance: RateLimitPolicy | None = None,
) -> dict[str, RateLimitPolicy]:
    """
    Build the stock category map.

    ``weather`` and ``news`` share the general-purpose quota; ``finance``
    defaults to 5 requests per minute because the upstream quota is strict.
    """
    general = RateLimitPolicy(max_requests=max_requests, window_s=window_s)
    return {
        "weather": general,
        "finance": finance or RateLimitPolicy(max_requests=5, window_s=60.0),
        "news": general,
    }

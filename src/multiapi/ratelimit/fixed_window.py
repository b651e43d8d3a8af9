"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: ratelimit/fixed_window.py.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ..errors import RateLimitExceededError
from .contracts import RateLimitPolicy

logger = logging.getLogger("multiapi.ratelimit")


@dataclass(slots=True)
class _Window:
    """Request count for one category and the time it resets."""

    count: int
    reset_at_s: float


class FixedWindowRateLimiter:
    """
    Concurrency-safe fixed-window limiter keyed by category.

    Checks never wait: an exhausted category raises
    ``RateLimitExceededError`` with the seconds left in the window. Up to twice
    the nominal rate can pass across a window boundary.

    Args:
        policies: Category -> policy map, copied and frozen at construction.
        clock: Wall clock in seconds, injectable for tests.
    """

    def __init__(
        self,
        policies: Mapping[str, RateLimitPolicy],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._policies: Mapping[str, RateLimitPolicy] = MappingProxyType(dict(policies))
        self._clock = clock
        self._rows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    @property
    def policies(self) -> Mapping[str, RateLimitPolicy]:
        return self._policies

    def categories(self) -> list[str]:
        return list(self._policies.keys())

    def check_limit(self, category: str) -> None:
        """Count one request against ``category`` or raise if it is exhausted."""
        policy = self._policies.get(category)
        if policy is None:
            logger.warning("No rate limit configured for %s", category)
            return

        with self._lock:
            now = self._clock()
            window = self._rows.get(category)
            if window is None:
                window = _Window(count=0, reset_at_s=now + policy.window_s)
                self._rows[category] = window

            if now > window.reset_at_s:
                window.count = 0
                window.reset_at_s = now + policy.window_s

            if window.count >= policy.max_requests:
                wait_s = window.reset_at_s - now
                retry_after_s = max(0, math.ceil(wait_s))
                logger.warning(
                    "Rate limit exceeded for %s. Wait %.3fs", category, wait_s
                )
                raise RateLimitExceededError(category, retry_after_s)

            window.count += 1
            count = window.count

        logger.debug("Rate limit for %s: %d/%d", category, count, policy.max_requests)

    def remaining(self, category: str) -> int | None:
        """
        Requests left in the active window, without touching any state.

        Returns the full quota when no window exists yet or the current one
        has rolled over, and ``None`` for unconfigured categories.
        """
        policy = self._policies.get(category)
        if policy is None:
            return None
        with self._lock:
            window = self._rows.get(category)
            if window is None or self._clock() > window.reset_at_s:
                return policy.max_requests
            return max(0, policy.max_requests - window.count)

    def reset(self, category: str | None = None) -> None:
        with self._lock:
            if category is not None:
                self._rows.pop(category, None)
            else:
                self._rows.clear()
        if category is not None:
            logger.info("Rate limit reset for %s", category)
        else:
            logger.info("All rate limits reset")

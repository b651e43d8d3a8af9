"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared services handed to tool handlers.

Handlers never reach for globals: the composing application builds one
``ToolRuntime`` and passes it to every tool factory. ``ToolRuntime.fetch``
implements the usual handler flow::

    cache hit?  -> return cached value
    rate limit  -> raise RateLimitExceededError when the category is exhausted
    loader()    -> call the upstream API
    cache.set   -> remember the result for the category TTL

Two concurrent misses on the same key both call the loader unless the runtime
was built with ``coalesce=True``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ..cache import CacheBackend
from ..errors import MultiAPIError, UpstreamError
from ..ratelimit import FixedWindowRateLimiter
from .coalescing import RequestCoalescer

logger = logging.getLogger("multiapi.tools.runtime")

T = TypeVar("T")


@dataclass(slots=True)
class ToolRuntime:
    """
    Cache, rate limiter and per-category TTLs shared by all handlers.

    Attributes:
        cache: Process-wide cache instance.
        rate_limiter: Process-wide category limiter.
        category_ttls_s: Cache TTL per rate limit category. Categories not
            listed use the cache default TTL.
        coalesce: Share one loader call between concurrent misses on a key.
    """

    cache: CacheBackend
    rate_limiter: FixedWindowRateLimiter
    category_ttls_s: Mapping[str, float] = field(default_factory=dict)
    coalesce: bool = False
    _coalescer: RequestCoalescer = field(default_factory=RequestCoalescer, init=False, repr=False)

    def ttl_for(self, category: str) -> float | None:
        return self.category_ttls_s.get(category)

    async def fetch(
        self,
        category: str,
        cache_key: str,
        loader: Callable[[], Awaitable[T]],
        *,
        ttl_s: float | None = None,
        failure: str = "Upstream request failed",
    ) -> T:
        """
        Return the cached value for ``cache_key`` or load, cache and return it.

        Args:
            category: Rate limit category charged on a cache miss.
            cache_key: Key under which the loaded value is cached.
            loader: Coroutine factory performing the upstream call.
            ttl_s: TTL override; defaults to ``ttl_for(category)``.
            failure: Prefix for the ``UpstreamError`` raised when the loader
                fails with a non-multiapi exception.
        """
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached value for %s", cache_key)
            return cached

        async def _miss() -> T:
            self.rate_limiter.check_limit(category)
            try:
                value = await loader()
            except MultiAPIError:
                raise
            except Exception as e:
                logger.error("Error loading %s: %s", cache_key, e)
                raise UpstreamError(f"{failure}: {e}") from e

            effective_ttl = ttl_s if ttl_s is not None else self.ttl_for(category)
            self.cache.set(cache_key, value, effective_ttl)
            logger.info("Fetched %s", cache_key)
            return value

        if self.coalesce:
            return await self._coalescer.run(cache_key, _miss)
        return await _miss()

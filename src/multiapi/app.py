"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Composition root: builds the cache, limiter, registry and dispatcher once and
hands them to transports. Nothing in multiapi keeps module-level singletons;
the object returned by ``build_runtime`` owns every shared service.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .cache import TTLCache
from .config import Settings
from .mcp.protocol import MCPProtocolHandler
from .metrics import DispatchMetrics, NullDispatchMetrics, PrometheusDispatchMetrics
from .ratelimit import FixedWindowRateLimiter
from .tools import ToolRegistration, ToolRegistry, ToolRuntime

logger = logging.getLogger("multiapi.app")


@dataclass(slots=True)
class MultiAPIRuntime:
    """Every process-wide service, constructed together and injected."""

    settings: Settings
    cache: TTLCache
    rate_limiter: FixedWindowRateLimiter
    registry: ToolRegistry
    tools: ToolRuntime
    protocol: MCPProtocolHandler
    metrics: DispatchMetrics

    def remaining_requests(self) -> dict[str, int | None]:
        return {
            category: self.rate_limiter.remaining(category)
            for category in self.rate_limiter.categories()
        }


def build_runtime(
    settings: Settings | None = None,
    *,
    tools: Iterable[ToolRegistration] = (),
    load_plugins: bool = True,
    metrics: DispatchMetrics | None = None,
) -> MultiAPIRuntime:
    """
    Construct the shared services and register tools.

    Args:
        settings: Explicit settings; defaults to ``Settings.from_env()``.
        tools: Registrations added after plugin discovery.
        load_plugins: Discover tool factories from the ``multiapi.tools``
            entry point group.
        metrics: Counter sink; Prometheus when ``settings.enable_prometheus``.
    """
    settings = settings or Settings.from_env()

    cache = TTLCache(
        default_ttl_s=settings.cache_default_ttl_s,
        sweep_interval_s=settings.cache_sweep_interval_s,
    )
    rate_limiter = FixedWindowRateLimiter(settings.rate_limit_policies())
    tool_runtime = ToolRuntime(
        cache=cache,
        rate_limiter=rate_limiter,
        category_ttls_s=dict(settings.category_ttls_s),
        coalesce=settings.coalesce_cache_misses,
    )
    registry = ToolRegistry(
        max_concurrency=settings.max_concurrency,
        default_timeout_s=settings.tool_timeout_s,
        reject_duplicates=settings.reject_duplicate_tools,
    )

    if load_plugins:
        loaded = registry.load_plugins(tool_runtime)
        logger.info("Loaded %d tools from plugins", loaded)
    registry.register_many(tools)

    if metrics is None:
        metrics = PrometheusDispatchMetrics() if settings.enable_prometheus else NullDispatchMetrics()

    protocol = MCPProtocolHandler(
        registry=registry,
        server_name=settings.name,
        server_version=settings.version,
        metrics=metrics,
    )
    return MultiAPIRuntime(
        settings=settings,
        cache=cache,
        rate_limiter=rate_limiter,
        registry=registry,
        tools=tool_runtime,
        protocol=protocol,
        metrics=metrics,
    )

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Runtime settings and explicit config loading.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .ratelimit import RateLimitPolicy, default_policies

logger = logging.getLogger("multiapi.config")


def _env_first(*names: str, default: str | None = None) -> str | None:
    """
    Return the first non-empty environment variable in `names`.

    Args:
        *names: Environment variable names to check in order.
        default: Value returned if no non-empty variable is found.
    """
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


def _env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    raw = _env_first(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r; using %s", name, raw, default)
        return default
    if value != value or (minimum is not None and value < minimum):
        logger.warning("Ignoring out-of-range %s=%r; using %s", name, raw, default)
        return default
    return value


def _env_positive_float(name: str, default: float) -> float:
    value = _env_float(name, default, minimum=0.0)
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%s; using %s", name, value, default)
        return default
    return value


def _env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = _env_first(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r; using %s", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        logger.warning("Ignoring out-of-range %s=%r; using %s", name, raw, default)
        return default
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_first(name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True, slots=True)
class Settings:
    """Explicit settings used to compose the cache, limiter, registry and transports."""

    name: str = "mcp-multi-api-server"
    version: str = "1.0.0"

    cache_default_ttl_s: float = 600.0
    cache_sweep_interval_s: float = 120.0
    category_ttls_s: dict[str, float] = field(
        default_factory=lambda: {"weather": 300.0, "finance": 60.0, "news": 600.0}
    )

    rate_limit_requests: int = 100
    rate_limit_window_ms: int = 60000
    finance_rate_limit_requests: int = 5
    finance_rate_limit_window_ms: int = 60000

    tool_timeout_s: float | None = None
    max_concurrency: int | None = None
    reject_duplicate_tools: bool = False
    coalesce_cache_misses: bool = False

    host: str = "0.0.0.0"
    port: int = 3000
    enable_prometheus: bool = False
    log_level: str = "INFO"

    def rate_limit_policies(self) -> dict[str, RateLimitPolicy]:
        return default_policies(
            max_requests=self.rate_limit_requests,
            window_s=self.rate_limit_window_ms / 1000.0,
            finance=RateLimitPolicy(
                max_requests=self.finance_rate_limit_requests,
                window_s=self.finance_rate_limit_window_ms / 1000.0,
            ),
        )

    @staticmethod
    def from_env() -> "Settings":
        """
        Load settings from environment variables.

        Malformed or out-of-range numbers are logged and replaced by their
        defaults, so a bad variable never stops the server from starting.
        """
        timeout = _env_float("MULTIAPI_TOOL_TIMEOUT_S", 0.0)
        max_concurrency = _env_int("MULTIAPI_MAX_CONCURRENCY", 0)
        return Settings(
            cache_default_ttl_s=_env_positive_float("CACHE_TTL", 600.0),
            cache_sweep_interval_s=_env_positive_float("CACHE_CHECK_PERIOD", 120.0),
            category_ttls_s={
                "weather": _env_positive_float("CACHE_TTL_WEATHER", 300.0),
                "finance": _env_positive_float("CACHE_TTL_FINANCE", 60.0),
                "news": _env_positive_float("CACHE_TTL_NEWS", 600.0),
            },
            rate_limit_requests=_env_int("RATE_LIMIT_REQUESTS", 100, minimum=0),
            rate_limit_window_ms=_env_int("RATE_LIMIT_WINDOW", 60000, minimum=1),
            finance_rate_limit_requests=_env_int("RATE_LIMIT_FINANCE_REQUESTS", 5, minimum=0),
            finance_rate_limit_window_ms=_env_int("RATE_LIMIT_FINANCE_WINDOW", 60000, minimum=1),
            tool_timeout_s=timeout if timeout > 0 else None,
            max_concurrency=max_concurrency if max_concurrency > 0 else None,
            reject_duplicate_tools=_env_bool("MULTIAPI_REJECT_DUPLICATE_TOOLS", False),
            coalesce_cache_misses=_env_bool("MULTIAPI_COALESCE_CACHE_MISSES", False),
            host=_env_first("HOST", default="0.0.0.0") or "0.0.0.0",
            port=_env_int("PORT", 3000, minimum=0),
            enable_prometheus=_env_bool("MULTIAPI_ENABLE_PROMETHEUS", False),
            log_level=(_env_first("MULTIAPI_LOG_LEVEL", default="INFO") or "INFO").upper(),
        )

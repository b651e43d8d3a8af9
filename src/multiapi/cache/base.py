"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

# Pass as ``ttl_s`` to store an entry that never expires.
NO_EXPIRY = float("inf")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One cached value with expiration metadata."""
    value: Any
    expires_at_s: float | None

    def is_expired(self, now_s: float) -> bool:
        return self.expires_at_s is not None and now_s > self.expires_at_s


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Counters reported by ``TTLCache.stats``."""
    keys: int
    hits: int
    misses: int

    def to_dict(self) -> dict[str, int]:
        return {"keys": self.keys, "hits": self.hits, "misses": self.misses}


class CacheBackend(Protocol):
    """Synchronous key/value cache consumed by tool handlers."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_s: float | None = None) -> bool: ...

    def delete(self, key: str) -> int: ...

    def flush(self) -> None: ...

    def stats(self) -> CacheStats: ...

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/inmemory.py.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from collections.abc import Callable
from typing import Any

from .base import NO_EXPIRY, CacheBackend, CacheEntry, CacheStats

logger = logging.getLogger("multiapi.cache")


class TTLCache(CacheBackend):
    """
    Process-local key/value cache with per-entry expiry.

    Expired entries are never returned: ``get`` checks the expiry on read and
    evicts the row, while an optional background sweeper removes rows nobody
    reads again. There is no size bound; memory grows with the number of live
    keys.

    Args:
        default_ttl_s: TTL used when ``set`` gets ``None`` or ``0``.
        sweep_interval_s: Period of the background sweeper.
        clock: Wall clock in seconds, injectable for tests.
    """

    def __init__(
        self,
        *,
        default_ttl_s: float = 600.0,
        sweep_interval_s: float = 120.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if default_ttl_s <= 0:
            raise ValueError("default_ttl_s must be > 0")
        if sweep_interval_s <= 0:
            raise ValueError("sweep_interval_s must be > 0")
        self._default_ttl_s = default_ttl_s
        self._sweep_interval_s = sweep_interval_s
        self._clock = clock
        self._rows: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task[None] | None = None

    @property
    def default_ttl_s(self) -> float:
        return self._default_ttl_s

    def get(self, key: str) -> Any | None:
        with self._lock:
            row = self._rows.get(key)
            if row is not None and row.is_expired(self._clock()):
                self._rows.pop(key, None)
                logger.debug("Cache expired: %s", key)
                row = None
            if row is None:
                self._misses += 1
                return None
            self._hits += 1
            return row.value

    def set(self, key: str, value: Any, ttl_s: float | None = None) -> bool:
        if ttl_s is None or ttl_s == 0:
            ttl_s = self._default_ttl_s
        if ttl_s < 0 or math.isnan(ttl_s):
            logger.warning("Refusing to cache %s with invalid ttl %r", key, ttl_s)
            return False

        expires_at_s = None if ttl_s == NO_EXPIRY else self._clock() + ttl_s
        with self._lock:
            self._rows[key] = CacheEntry(value=value, expires_at_s=expires_at_s)
        logger.debug("Cache set: %s", key)
        return True

    def delete(self, key: str) -> int:
        with self._lock:
            return 1 if self._rows.pop(key, None) is not None else 0

    def flush(self) -> None:
        with self._lock:
            self._rows.clear()
        logger.info("Cache flushed")

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(keys=len(self._rows), hits=self._hits, misses=self._misses)

    def sweep(self) -> int:
        """Evict every expired row now and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, row in self._rows.items() if row.is_expired(now)]
            for key in expired:
                del self._rows[key]
        for key in expired:
            logger.debug("Cache expired: %s", key)
        return len(expired)

    # ''''''''''''''''''
    # Background sweeper
    # ''''''''''''''''''

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def stop_sweeper(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval_s)
            try:
                removed = self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")
                continue
            if removed:
                logger.debug("Cache sweep evicted %d expired keys", removed)

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .base import NO_EXPIRY, CacheBackend, CacheEntry, CacheStats
from .inmemory import TTLCache

__all__ = [
    "NO_EXPIRY",
    "CacheBackend",
    "CacheEntry",
    "CacheStats",
    "TTLCache",
]

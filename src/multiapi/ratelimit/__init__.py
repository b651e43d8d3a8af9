"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: ratelimit/__init__.py.
"""

from .contracts import RateLimitPolicy, default_policies
from .fixed_window import FixedWindowRateLimiter

__all__ = [
    "RateLimitPolicy",
    "default_policies",
    "FixedWindowRateLimiter",
]

"""
Rate limiting module.

Per-client, per-route request throttling for the web API.
"""

from src.ratelimit.limiter import (
    RateLimiter,
    RateLimitDecision,
    client_key,
)

__all__ = [
    "RateLimiter",
    "RateLimitDecision",
    "client_key",
]

"""
Services module.

Shared request lifecycle and retry helpers.
"""

from src.services.retry import (
    RequestState,
    AsyncResult,
    BackoffPolicy,
    retry_with_backoff,
)

__all__ = [
    "RequestState",
    "AsyncResult",
    "BackoffPolicy",
    "retry_with_backoff",
]

"""
Fixed-window rate limiter for the Weekly Best API.

One RateLimiter instance is owned by the web app and injected where it
is needed. Each key (client + route) gets a window of `window_seconds`
allowing `max_requests` requests; the first request after the window
expires opens a new one.

State is per process. Several app instances behind a load balancer each
count separately, so a shared counter store is needed there.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional
import math
import threading
import time

from src.config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS


@dataclass
class RateLimitDecision:
    """
    Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Maximum requests per window.
        remaining: Requests left in the current window.
        reset_at: Epoch seconds when the current window ends.
        retry_after: Whole seconds to wait before retrying (0 if allowed).
    """
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0

    @property
    def reset_at_iso(self) -> str:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()

    def headers(self) -> Dict[str, str]:
        """HTTP headers describing this decision."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_at_iso,
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    Thread-safe fixed-window limiter.

    Usage:
        limiter = RateLimiter(max_requests=100, window_seconds=60)
        decision = limiter.check("203.0.113.7:/api/weekly-best")
        if not decision.allowed:
            ...  # respond 429 with decision.headers()
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
        sweep_interval: int = 1000,
    ):
        """
        Initialize the limiter.

        Args:
            max_requests: Requests allowed per key per window.
            window_seconds: Window length in seconds.
            clock: Returns current epoch seconds (injectable for tests).
            sweep_interval: Run an eviction sweep every N checks (0 disables).
        """
        if max_requests < 1:
            raise ValueError(f"max_requests must be at least 1, got {max_requests}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._checks = 0
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitDecision:
        """
        Count a request for key and decide whether it is allowed.

        Blocked requests do not extend or consume the window.
        """
        with self._lock:
            now = self._clock()

            self._checks += 1
            if self.sweep_interval and self._checks % self.sweep_interval == 0:
                self._sweep_locked(now)

            window = self._windows.get(key)

            if window is None or window.reset_at <= now:
                window = _Window(count=1, reset_at=now + self.window_seconds)
                self._windows[key] = window
                return RateLimitDecision(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - 1,
                    reset_at=window.reset_at,
                )

            if window.count >= self.max_requests:
                retry_after = max(1, math.ceil(window.reset_at - now))
                return RateLimitDecision(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_at=window.reset_at,
                    retry_after=retry_after,
                )

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - window.count,
                reset_at=window.reset_at,
            )

    def sweep(self) -> int:
        """
        Evict expired windows.

        Returns:
            Number of keys removed.
        """
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def reset(self) -> None:
        """Forget all windows."""
        with self._lock:
            self._windows.clear()
            self._checks = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)


def client_key(
    path: str,
    remote_addr: Optional[str] = None,
    forwarded_for: Optional[str] = None,
    real_ip: Optional[str] = None,
) -> str:
    """
    Build the limiter key for a request.

    The client is the first X-Forwarded-For hop, else X-Real-IP, else the
    socket address, else "unknown".
    """
    client = None
    if forwarded_for:
        client = forwarded_for.split(",")[0].strip() or None
    client = client or real_ip or remote_addr or "unknown"
    return f"{client}:{path}"

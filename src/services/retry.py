"""
Request lifecycle and retry-with-backoff for Weekly Best.

AsyncResult is the one representation of a request's state
(idle -> loading -> success / error) used across the project, and
retry_with_backoff is the one retry loop. Callers wrap an HTTP call in
retry_with_backoff and get an AsyncResult back instead of deciding
per call site how to retry and how to report failure.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Type
import time

from src.config import (
    RETRY_MAX_ATTEMPTS,
    RETRY_BASE_DELAY,
    RETRY_BACKOFF_MULTIPLIER,
)


class RequestState(str, Enum):
    """Lifecycle states of a request."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class AsyncResult:
    """
    Tagged result of a request.

    Only `value` is meaningful in SUCCESS, only `error` in ERROR.

    Attributes:
        state: Current RequestState.
        value: Result value on success.
        error: Exception that ended the last attempt on failure.
        attempts: Number of attempts made.
    """
    state: RequestState = RequestState.IDLE
    value: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @classmethod
    def idle(cls) -> "AsyncResult":
        return cls(state=RequestState.IDLE)

    @classmethod
    def loading(cls, attempts: int = 0) -> "AsyncResult":
        return cls(state=RequestState.LOADING, attempts=attempts)

    @classmethod
    def success(cls, value: Any, attempts: int = 1) -> "AsyncResult":
        return cls(state=RequestState.SUCCESS, value=value, attempts=attempts)

    @classmethod
    def failure(cls, error: BaseException, attempts: int = 1) -> "AsyncResult":
        return cls(state=RequestState.ERROR, error=error, attempts=attempts)

    @property
    def ok(self) -> bool:
        return self.state == RequestState.SUCCESS

    @property
    def failed(self) -> bool:
        return self.state == RequestState.ERROR

    def unwrap(self) -> Any:
        """
        Return the value or raise the stored error.

        Raises:
            The stored exception when in ERROR.
            RuntimeError: When still IDLE or LOADING.
        """
        if self.state == RequestState.SUCCESS:
            return self.value
        if self.state == RequestState.ERROR:
            raise self.error
        raise RuntimeError(f"Result is not settled (state={self.state.value})")


@dataclass
class BackoffPolicy:
    """
    Retry schedule.

    The delay before retry k (k starting at 0) is
    base_delay * multiplier ** k.
    """
    max_attempts: int = RETRY_MAX_ATTEMPTS
    base_delay: float = RETRY_BASE_DELAY
    multiplier: float = RETRY_BACKOFF_MULTIPLIER

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay cannot be negative, got {self.base_delay}")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be at least 1, got {self.multiplier}")

    def delay_for(self, retry_index: int) -> float:
        return self.base_delay * (self.multiplier ** retry_index)


def retry_with_backoff(
    fn: Callable[[], Any],
    policy: Optional[BackoffPolicy] = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
) -> AsyncResult:
    """
    Call fn until it succeeds or the policy runs out of attempts.

    Exceptions not listed in retry_on end the loop immediately.

    Args:
        fn: Zero-argument callable to invoke.
        policy: Retry schedule. Defaults to BackoffPolicy() from config.
        retry_on: Exception types that trigger a retry.
        sleep: Sleep function (injectable for tests).
        on_retry: Called as on_retry(attempt, error, delay) before sleeping.

    Returns:
        AsyncResult in SUCCESS or ERROR state.
    """
    policy = policy or BackoffPolicy()

    attempt = 0
    while True:
        attempt += 1
        try:
            return AsyncResult.success(fn(), attempts=attempt)
        except retry_on as e:
            if attempt >= policy.max_attempts:
                return AsyncResult.failure(e, attempts=attempt)

            delay = policy.delay_for(attempt - 1)
            if on_retry is not None:
                on_retry(attempt, e, delay)
            sleep(delay)
        except Exception as e:
            return AsyncResult.failure(e, attempts=attempt)

"""Optimistic-concurrency retry policy.

Every read-modify-write against a single event record runs through a
`RetryPolicy`. When the store rejects a write because the record changed
underneath it, the whole operation is re-run from a fresh read so that
eligibility and capacity are re-evaluated against the latest state.
"""
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from employee_training.core.config import settings
from employee_training.core.errors import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_concurrency_conflict(exc: BaseException) -> bool:
    """Default retriable-error predicate."""
    return isinstance(exc, ConcurrencyConflictError)


class RetryPolicy:
    """Retry an async operation on retriable errors with linear backoff.

    Args:
        max_attempts: Total number of attempts, including the first one.
        backoff_step: Seconds added to the wait after each failed attempt
            (0.25 gives 0.25s, 0.5s, 0.75s, ...).
        is_retriable: Predicate deciding whether an exception is retried.
            Anything it rejects propagates immediately.
    """

    def __init__(
        self,
        max_attempts: int = 25,
        backoff_step: float = 0.25,
        is_retriable: Callable[[BaseException], bool] = is_concurrency_conflict,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_step = backoff_step
        self.is_retriable = is_retriable

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            backoff_step=settings.retry_backoff_ms / 1000,
        )

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run `operation`, re-running it from scratch on retriable errors.

        When attempts are exhausted the last underlying error is re-raised.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_step, increment=self.backoff_step),
            retry=retry_if_exception(self.is_retriable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await operation()

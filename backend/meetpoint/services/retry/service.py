"""Bounded exponential-backoff retry for async operations.

The executor re-invokes a failing operation while the classifier says the
error is transient and attempts remain. The final error is re-raised as the
same object so callers can still match on its kind.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx

from meetpoint.models import LocationServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorClassifier = Callable[[BaseException], bool]
SleepFunc = Callable[[float], Awaitable[None]]


def is_retryable(error: BaseException) -> bool:
    """Default classification policy.

    NETWORK_ERROR and QUOTA_EXCEEDED retry; every other error kind fails
    fast. Raw httpx timeouts and transport errors that escaped an adapter
    count as network errors.
    """
    if isinstance(error, LocationServiceError):
        return error.retryable
    if isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        return True
    return False


class RetryExecutor:
    """Runs async operations with retry and exponential backoff.

    Attributes:
        max_attempts: Total attempts, including the first call.
        base_delay: Delay in seconds before the first retry.
        backoff_factor: Multiplier applied per retry.
        max_delay: Upper bound for a single delay.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        backoff_factor: float = 2.0,
        max_delay: float = 30.0,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self._sleep = sleep

    def compute_delay(
        self,
        retry_index: int,
        base_delay: float | None = None,
        backoff_factor: float | None = None,
        max_delay: float | None = None,
    ) -> float:
        """Delay before retry number ``retry_index`` (0-based)."""
        base = self.base_delay if base_delay is None else base_delay
        factor = self.backoff_factor if backoff_factor is None else backoff_factor
        cap = self.max_delay if max_delay is None else max_delay
        return min(base * factor**retry_index, cap)

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        classify: ErrorClassifier = is_retryable,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        backoff_factor: float | None = None,
        max_delay: float | None = None,
        label: str = "operation",
    ) -> T:
        """Invoke ``operation`` until it succeeds or retrying stops.

        Args:
            operation: Zero-argument coroutine factory. Called once per attempt.
            classify: Returns True when an error is worth retrying.
            max_attempts: Overrides the executor's attempt budget.
            base_delay: Overrides the executor's base delay.
            backoff_factor: Overrides the executor's backoff factor.
            max_delay: Overrides the executor's delay cap.
            label: Name used in log lines.

        Returns:
            The operation's result.

        Raises:
            The last error raised by ``operation``, unchanged.
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                if attempt >= attempts or not classify(e):
                    if attempt > 1:
                        logger.warning(
                            f"[RETRY] {label} failed after {attempt} attempts: {e!r}"
                        )
                    raise

                delay = self.compute_delay(attempt - 1, base_delay, backoff_factor, max_delay)
                logger.info(
                    f"[RETRY] {label} attempt {attempt}/{attempts} failed "
                    f"({type(e).__name__}), retrying in {delay:.2f}s"
                )
                await self._sleep(delay)

"""
Reusable retry-with-backoff policy for external calls.

Every external call site (GitHub API, portfolio crawl, suggestion generation)
goes through a RetryPolicy instead of hand-rolled loops. The policy is a thin
parameterization of tenacity: max attempts, base delay, max delay and jitter.

Usage:
    policy = RetryPolicy.from_config()
    facts = await policy.call(fetcher.fetch_github_facts, url)
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_exponential_jitter,
)

from .config import Config
from .errors import ExternalFetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Only transient fetch errors are worth another attempt."""
    return isinstance(exc, ExternalFetchError) and exc.transient


@dataclass(frozen=True)
class RetryPolicy:
    """
    Parameterized exponential backoff.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay: Delay before the first retry, doubled each attempt (seconds)
        max_delay: Upper bound for a single wait (seconds)
        jitter: Add up to this many random seconds to each wait (0 disables)
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = 1.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("delays must not be negative")

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        """Build the default fetch policy from Config."""
        return cls(
            max_attempts=Config.FETCH_MAX_ATTEMPTS,
            base_delay=Config.FETCH_BASE_DELAY_SECONDS,
            max_delay=Config.FETCH_MAX_DELAY_SECONDS,
        )

    def _wait(self):
        if self.jitter > 0:
            return wait_exponential_jitter(
                initial=self.base_delay, max=self.max_delay, jitter=self.jitter
            )
        return wait_exponential(multiplier=self.base_delay, max=self.max_delay)

    def retrying(
        self,
        retry_on: Callable[[BaseException], bool] = is_transient,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> AsyncRetrying:
        """Build a tenacity AsyncRetrying controller for this policy."""
        kwargs = {}
        if sleep is not None:
            kwargs["sleep"] = sleep
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait(),
            retry=retry_if_exception(retry_on),
            before_sleep=self._log_retry,
            reraise=True,
            **kwargs,
        )

    async def call(
        self,
        func: Callable[..., Awaitable[T]],
        *args,
        retry_on: Callable[[BaseException], bool] = is_transient,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        **kwargs,
    ) -> T:
        """
        Await func(*args, **kwargs) under this policy.

        The last exception is re-raised unchanged once attempts run out or
        when retry_on rejects it.
        """
        async for attempt in self.retrying(retry_on=retry_on, sleep=sleep):
            with attempt:
                return await func(*args, **kwargs)
        # AsyncRetrying with reraise=True never falls through
        raise RuntimeError("retry loop exited without result")

    @staticmethod
    def _log_retry(retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"Attempt {retry_state.attempt_number} failed ({exc}); "
            f"retrying in {retry_state.next_action.sleep:.1f}s"
        )

"""
Bounded retry with backoff on top of tenacity.

Shared by session acquisition and option chain fetching so both paths
agree on attempt counting and pacing.
"""
import asyncio
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from chainwatch.core.exceptions import ChainwatchError
from chainwatch.logger import logger

T = TypeVar("T")

FailureHook = Callable[[int, BaseException], Awaitable[None]]


class RetryPolicy:
    """Run an async operation up to ``max_attempts`` times.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates immediately. Between attempts the optional failure hook
    runs first, then the policy sleeps ``attempt * backoff_unit_seconds``.
    No hook and no sleep follow the final attempt. When every attempt
    fails, the last exception is re-raised.

    Example:
        policy = RetryPolicy(max_attempts=3, backoff_unit_seconds=2.0)
        data = await policy.run(lambda attempt: fetch_once(), on_failure=renew)
    """

    def __init__(
        self,
        max_attempts: int,
        backoff_unit_seconds: float,
        retry_on: Tuple[Type[BaseException], ...] = (ChainwatchError,),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "operation",
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.backoff_unit_seconds = backoff_unit_seconds
        self.retry_on = retry_on
        self.name = name
        self._sleep = sleep

    def retrying(self, on_failure: Optional[FailureHook] = None) -> AsyncRetrying:
        """tenacity controller for one run of the policy."""

        async def before_sleep(state: RetryCallState) -> None:
            if on_failure is not None:
                await on_failure(state.attempt_number, state.outcome.exception())
            delay = state.next_action.sleep
            if delay > 0:
                logger.debug(f"{self.name}: waiting {delay:.1f}s before attempt {state.attempt_number + 1}")

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_unit_seconds, increment=self.backoff_unit_seconds),
            retry=retry_if_exception_type(self.retry_on),
            after=self._log_failure,
            before_sleep=before_sleep,
            sleep=self._pause,
            reraise=True,
        )

    async def run(
        self,
        operation: Callable[[int], Awaitable[T]],
        on_failure: Optional[FailureHook] = None,
    ) -> T:
        """Execute ``operation(attempt)`` with attempts numbered from 1."""
        try:
            async for attempt in self.retrying(on_failure):
                with attempt:
                    return await operation(attempt.retry_state.attempt_number)
        except self.retry_on:
            logger.error(f"{self.name}: giving up after {self.max_attempts} attempt(s)")
            raise

    def _log_failure(self, state: RetryCallState) -> None:
        logger.warning(
            f"{self.name} failed (attempt {state.attempt_number}/{self.max_attempts}): "
            f"{state.outcome.exception()}"
        )

    async def _pause(self, delay: float) -> None:
        if delay > 0:
            await self._sleep(delay)

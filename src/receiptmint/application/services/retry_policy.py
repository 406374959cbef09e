"""Retry, backoff and deadline helpers for the pipeline's remote steps."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from receiptmint.domain.pipeline.exceptions import PipelineTimeoutError
from receiptmint.domain.pipeline.stages import PipelineStep

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]

# Shielded attempts outlive a cancelled or timed-out caller
_background_tasks: set[asyncio.Task] = set()


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff with jitter.

    ``delay_for(n)`` is the pause after the n-th failed attempt:
    ``min(max_delay, base_delay * 2 ** (n - 1))`` stretched by up to
    ``jitter`` (a fraction) of itself.
    """

    max_attempts: int
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.25
    attempt_timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            msg = "Delays and jitter cannot be negative"
            raise ValueError(msg)

    def delay_for(self, attempt: int) -> float:
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter:
            delay += delay * random.uniform(0, self.jitter)  # noqa: S311
        return delay


class Deadline:
    """Wall-clock budget for one pipeline run (None means unbounded)."""

    def __init__(
        self,
        seconds: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def clamp(self, timeout: Optional[float]) -> Optional[float]:
        """Shorten ``timeout`` so it does not outlast the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)


async def run_with_retry(  # noqa: PLR0913
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    deadline: Deadline,
    step: PipelineStep,
    *,
    is_retryable: Callable[[Exception], bool],
    on_timeout: Callable[[float], Exception],
    before_retry: Optional[Callable[[int], Awaitable[Optional[T]]]] = None,
    shield: bool = False,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """
    Run ``operation(attempt)`` until it succeeds or retrying stops making sense.

    Parameters
    ----------
    operation
        Coroutine factory called with the 1-based attempt number
    policy
        Attempt ceiling, backoff and per-attempt timeout
    deadline
        Pipeline-wide budget; once spent, ``PipelineTimeoutError`` is raised
    step
        Step reported in the timeout error
    is_retryable
        Whether a raised exception may be retried
    on_timeout
        Builds the exception for an attempt that exceeded its timeout
    before_retry
        Awaited before every retry; a non-None return value short-circuits
        the loop and is returned as the result
    shield
        Run each attempt as a shielded task so cancellation of the caller
        does not abort work already sent to a remote system
    sleep
        Injected for tests

    Raises
    ------
    PipelineTimeoutError
        When the deadline expires before an attempt could succeed
    Exception
        The last non-retryable or final retryable error
    """
    last_error: Optional[Exception] = None
    attempt = 0

    while True:
        attempt += 1
        if deadline.expired():
            raise _deadline_exceeded(step, attempt - 1) from last_error

        if attempt > 1 and before_retry is not None:
            shortcut = await before_retry(attempt)
            if shortcut is not None:
                return shortcut

        timeout = deadline.clamp(policy.attempt_timeout)
        try:
            return await _attempt(operation(attempt), timeout, shield)
        except asyncio.TimeoutError:
            if deadline.expired():
                raise _deadline_exceeded(step, attempt) from last_error
            last_error = on_timeout(timeout or 0.0)
            if attempt >= policy.max_attempts:
                raise last_error from None
        except Exception as e:
            if not is_retryable(e) or attempt >= policy.max_attempts:
                raise
            last_error = e

        delay = policy.delay_for(attempt)
        remaining = deadline.remaining()
        if remaining is not None and delay >= remaining:
            raise _deadline_exceeded(step, attempt) from last_error

        logger.info(
            "%s attempt %d/%d failed (%s), retrying in %.2fs",
            step.value,
            attempt,
            policy.max_attempts,
            last_error,
            delay,
        )
        await sleep(delay)


async def _attempt(coro: Awaitable[T], timeout: Optional[float], shield: bool) -> T:
    if not shield:
        return await asyncio.wait_for(coro, timeout)

    task = asyncio.ensure_future(coro)
    _background_tasks.add(task)
    task.add_done_callback(_forget_task)
    return await asyncio.wait_for(asyncio.shield(task), timeout)


def _forget_task(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Detached attempt finished with %r", task.exception())


def _deadline_exceeded(step: PipelineStep, attempts: int) -> PipelineTimeoutError:
    msg = f"Pipeline deadline expired during {step.value} after {attempts} attempt(s)"
    return PipelineTimeoutError(msg, {"step": step.value, "attempts": attempts})

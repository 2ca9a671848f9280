"""
ecs_discovery.tier1_runtime.retry
───────────────────────────────────
Backoff policy for the provider operation. The discovery engine itself never
retries: one poll either succeeds or raises. This module wraps the whole
operation (client construction + watch loop) so a failure restarts it with
exponential backoff and jitter, until the provider is asked to stop.

The exponent counts failures since the last healthy attempt, not since the
process started: an attempt that delivered snapshots before failing resets
the delay to its shortest value.

Backed by Tenacity. ConfigurationError and cancellation are never retried.

Usage:
    await retry_until_stopped(operation, stop_event=stop, notify=log_retry,
                              healthy=lambda: delivered)
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    wait_random,
)
from tenacity.wait import wait_base

from ecs_discovery.tier0_core.errors import DiscoveryError

Notify = Callable[[BaseException, float], None]
Healthy = Callable[[], bool]


def _is_retryable(exc: BaseException) -> bool:
    """Return True if the exception should restart the operation."""
    if isinstance(exc, asyncio.CancelledError):
        return False
    if isinstance(exc, DiscoveryError):
        return exc.retryable
    return isinstance(exc, Exception)


class wait_exponential_since_healthy(wait_base):
    """
    Exponential wait counted from the last healthy attempt.

    tenacity's attempt_number grows for the life of the retry loop; this
    wait instead counts failures since the most recent attempt for which
    healthy() answered True, so one error after a long good run starts
    again from the shortest delay.
    """

    def __init__(
        self,
        healthy: Healthy | None = None,
        multiplier: float = 1.0,
        min_wait: float = 0.0,
        max_wait: float = 60.0,
    ) -> None:
        self.healthy = healthy
        self.multiplier = multiplier
        self.min_wait = min_wait
        self.max_wait = max_wait
        self._reset_at = 0

    def __call__(self, retry_state: RetryCallState) -> float:
        if self.healthy is not None and self.healthy():
            self._reset_at = retry_state.attempt_number - 1
        failures = retry_state.attempt_number - self._reset_at
        try:
            delay = self.multiplier * 2 ** (failures - 1)
        except OverflowError:
            return self.max_wait
        return max(self.min_wait, min(delay, self.max_wait))


def _interruptible_sleep(stop_event: asyncio.Event) -> Callable[[float], Awaitable[None]]:
    async def _sleep(seconds: float) -> None:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
    return _sleep


async def retry_until_stopped(
    operation: Callable[[], Awaitable[Any]],
    *,
    stop_event: asyncio.Event,
    notify: Notify | None = None,
    healthy: Healthy | None = None,
    multiplier: float = 1.0,
    min_wait: float = 0.5,
    max_wait: float = 60.0,
    jitter: float = 1.0,
) -> Any:
    """
    Run operation, restarting it with exponential backoff on retryable errors.

    Args:
        operation:  Zero-argument coroutine function to run.
        stop_event: Once set, no further attempts are made; the last error is
                    re-raised. Backoff sleeps end early when it is set.
        notify:     Called with (error, next_delay_seconds) before each sleep.
        healthy:    Asked after each failed attempt; True means the attempt
                    did useful work before failing and the backoff restarts.
        multiplier: First delay in seconds; doubles per consecutive failure.
        min_wait:   Minimum wait seconds between attempts.
        max_wait:   Maximum wait seconds between attempts.
        jitter:     Maximum random seconds added to each wait.
    """
    def _before_sleep(state: RetryCallState) -> None:
        if notify is None or state.outcome is None:
            return
        delay = state.next_action.sleep if state.next_action else 0.0
        notify(state.outcome.exception(), delay)

    backoff = wait_exponential_since_healthy(
        healthy, multiplier=multiplier, min_wait=min_wait, max_wait=max_wait
    )
    async for attempt in AsyncRetrying(
        stop=lambda _state: stop_event.is_set(),
        wait=backoff + wait_random(0, jitter),
        retry=retry_if_exception(_is_retryable),
        sleep=_interruptible_sleep(stop_event),
        before_sleep=_before_sleep,
        reraise=True,
    ):
        with attempt:
            return await operation()


__all__ = ["retry_until_stopped", "wait_exponential_since_healthy"]

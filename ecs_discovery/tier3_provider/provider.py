"""
ecs_discovery.tier3_provider.provider
───────────────────────────────────────
The ECS provider: builds the AWS clients, polls, translates and hands each
snapshot to the consumer queue, then polls again every refresh interval
while watch is on.

The whole operation runs under exponential backoff: a failed poll (or client
construction) is logged, counted, and the operation restarts after a delay.
The delay starts over once an attempt has delivered a snapshot.
stop() ends everything: a poll in flight is cancelled and nothing is sent
for it, a backoff sleep ends early, and provide() returns.

Usage::

    queue: asyncio.Queue[ConfigMessage] = asyncio.Queue()
    provider = EcsProvider(get_config(), queue)
    task = asyncio.create_task(provider.provide())
    ...
    provider.stop()
    await task
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ecs_discovery.tier0_core.config import DiscoveryConfig
from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier0_core.metrics import (
    consecutive_failures,
    instances_discovered,
    poll_failures,
)
from ecs_discovery.tier1_runtime.retry import retry_until_stopped
from ecs_discovery.tier2_discovery.api import EcsApi
from ecs_discovery.tier2_discovery.engine import Discoverer
from ecs_discovery.tier2_discovery.filters import InstanceFilter
from ecs_discovery.tier2_discovery.grouping import ServiceGroups
from ecs_discovery.tier3_provider.aws import create_client
from ecs_discovery.tier3_provider.translate import build_configuration

logger = get_logger(__name__)

PROVIDER_NAME = "ecs"

ClientFactory = Callable[[DiscoveryConfig], EcsApi]
Translator = Callable[[Mapping[str, list], str], dict[str, Any]]


@dataclass(frozen=True)
class ConfigMessage:
    provider_name: str
    configuration: dict[str, Any]


class EcsProvider:
    def __init__(
        self,
        config: DiscoveryConfig,
        queue: asyncio.Queue[ConfigMessage],
        *,
        client_factory: ClientFactory = create_client,
        translator: Translator = build_configuration,
    ) -> None:
        self._config = config
        self._queue = queue
        self._client_factory = client_factory
        self._translator = translator
        self._stop = asyncio.Event()
        self._failures = 0
        self._delivered = False

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def provide(self) -> None:
        """Run until stopped (or after one snapshot when watch is off)."""
        try:
            await retry_until_stopped(
                self._operation,
                stop_event=self._stop,
                notify=self._notify_retry,
                healthy=self._attempt_was_healthy,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("provider.gave_up", error=str(exc), error_type=type(exc).__name__)

    # ── Operation ─────────────────────────────────────────────────────────────

    async def _operation(self) -> None:
        self._delivered = False
        if self.stopped:
            return
        try:
            api = await asyncio.to_thread(self._client_factory, self._config)
        except Exception as exc:
            self._record_failure(exc)
            raise
        discoverer = Discoverer(
            api,
            self._config.cluster_selection(),
            InstanceFilter(exposed_by_default=self._config.exposed_by_default),
        )

        if not await self._poll_and_send(discoverer) or not self._config.watch:
            return

        while not await self._sleep_or_stop(self._config.refresh_seconds):
            if not await self._poll_and_send(discoverer):
                return

    async def _poll_and_send(self, discoverer: Discoverer) -> bool:
        """
        Run one poll, racing it against stop(). Returns False when the poll
        was cancelled by stop(); raises when the poll failed.
        """
        poll = asyncio.ensure_future(discoverer.poll())
        stop_wait = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait({poll, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            poll.cancel()
            raise
        finally:
            stop_wait.cancel()

        if not poll.done():
            poll.cancel()
            try:
                await poll
            except asyncio.CancelledError:
                pass
            logger.info("provider.poll_cancelled")
            return False

        try:
            services = poll.result()
        except Exception as exc:
            self._record_failure(exc)
            raise

        self._record_success(services)
        self._send(self._translator(services, self._config.domain))
        return True

    async def _sleep_or_stop(self, seconds: float) -> bool:
        """Wait for the next tick. True when stop() was called meanwhile."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    def _send(self, configuration: dict[str, Any]) -> None:
        message = ConfigMessage(provider_name=PROVIDER_NAME, configuration=configuration)
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            # consumer is behind: the newest snapshot replaces the oldest
            self._queue.get_nowait()
            self._queue.put_nowait(message)
            logger.warning("provider.queue_full", maxsize=self._queue.maxsize)

    # ── Bookkeeping ───────────────────────────────────────────────────────────

    def _record_success(self, services: ServiceGroups) -> None:
        self._failures = 0
        self._delivered = True
        consecutive_failures().set(0)
        instances_discovered().set(sum(len(v) for v in services.values()))

    def _record_failure(self, exc: BaseException) -> None:
        self._failures += 1
        consecutive_failures().set(self._failures)
        poll_failures(error_type=type(exc).__name__).inc()

    def _attempt_was_healthy(self) -> bool:
        """True when the failed attempt delivered at least one snapshot first."""
        return self._delivered

    def _notify_retry(self, exc: BaseException, delay: float) -> None:
        logger.error(
            "provider.connection_error",
            error=str(exc),
            error_type=type(exc).__name__,
            retry_in_s=round(delay, 2),
            consecutive_failures=self._failures,
        )


__all__ = ["PROVIDER_NAME", "ConfigMessage", "EcsProvider"]

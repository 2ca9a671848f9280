"""Tests for tier1_runtime modules."""
from __future__ import annotations

import asyncio
import math

import pytest

from ecs_discovery.tier0_core.errors import ConfigurationError
from ecs_discovery.tier1_runtime.context import end_poll_context, get_poll_context, new_poll_context
from ecs_discovery.tier1_runtime.paging import MAX_BATCH, Page, chunked, collect_pages
from ecs_discovery.tier1_runtime.retry import retry_until_stopped


def _paged_source(pages: list[list[int]], fail_on: int | None = None):
    """Fake listing call serving the given pages; raises on page index fail_on."""
    requested: list[str | None] = []

    async def fetch(cursor: str | None) -> Page[int]:
        requested.append(cursor)
        index = int(cursor or 0)
        if index == fail_on:
            raise RuntimeError(f"page {index} failed")
        next_cursor = str(index + 1) if index + 1 < len(pages) else None
        return Page(pages[index], next_cursor)

    return fetch, requested


# ── chunked ────────────────────────────────────────────────────────────────

class TestChunked:
    @pytest.mark.parametrize("n,size", [(1, 100), (99, 100), (100, 100), (101, 100), (250, 100), (7, 3)])
    def test_chunk_count_and_order(self, n, size):
        ids = [f"arn-{i}" for i in range(n)]
        chunks = chunked(ids, size)
        assert len(chunks) == math.ceil(n / size)
        assert all(len(c) <= size for c in chunks)
        assert [i for c in chunks for i in c] == ids

    def test_empty_input_yields_no_chunks(self):
        assert chunked([]) == []

    def test_default_size_is_api_ceiling(self):
        chunks = chunked(list(range(201)))
        assert [len(c) for c in chunks] == [MAX_BATCH, MAX_BATCH, 1]

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            chunked([1, 2], 0)


# ── collect_pages ──────────────────────────────────────────────────────────

class TestCollectPages:
    @pytest.mark.asyncio
    async def test_concatenates_pages_in_order(self):
        fetch, requested = _paged_source([[1, 2, 3], [4], [5, 6]])
        assert await collect_pages(fetch) == [1, 2, 3, 4, 5, 6]
        assert requested == [None, "1", "2"]

    @pytest.mark.asyncio
    async def test_single_page(self):
        fetch, requested = _paged_source([["only"]])
        assert await collect_pages(fetch) == ["only"]
        assert requested == [None]

    @pytest.mark.asyncio
    async def test_empty_pages_still_follow_cursor(self):
        fetch, _ = _paged_source([[], [1], []])
        assert await collect_pages(fetch) == [1]

    @pytest.mark.asyncio
    async def test_page_error_surfaces_immediately(self):
        fetch, requested = _paged_source([[1], [2], [3]], fail_on=1)
        with pytest.raises(RuntimeError, match="page 1 failed"):
            await collect_pages(fetch)
        assert requested == [None, "1"]


# ── context ────────────────────────────────────────────────────────────────

class TestPollContext:
    def test_new_context_is_active_until_ended(self):
        ctx = new_poll_context()
        assert get_poll_context() is ctx
        assert len(ctx.poll_id) == 12
        assert ctx.elapsed >= 0
        end_poll_context()
        assert get_poll_context() is None

    def test_each_poll_gets_its_own_id(self):
        first = new_poll_context()
        second = new_poll_context()
        end_poll_context()
        assert first.poll_id != second.poll_id


# ── retry ──────────────────────────────────────────────────────────────────

class TestRetryUntilStopped:
    @pytest.mark.asyncio
    async def test_retries_until_success_and_notifies(self):
        attempts = 0
        notified: list[tuple[str, float]] = []

        async def operation():
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise RuntimeError("throttled")
            return "ok"

        result = await retry_until_stopped(
            operation,
            stop_event=asyncio.Event(),
            notify=lambda exc, delay: notified.append((str(exc), delay)),
            min_wait=0,
            max_wait=0,
            jitter=0,
        )
        assert result == "ok"
        assert attempts == 3
        assert [msg for msg, _ in notified] == ["throttled", "throttled"]

    @pytest.mark.asyncio
    async def test_configuration_error_is_not_retried(self):
        attempts = 0

        async def operation():
            nonlocal attempts
            attempts += 1
            raise ConfigurationError(user_message="no clusters")

        with pytest.raises(ConfigurationError):
            await retry_until_stopped(operation, stop_event=asyncio.Event(), min_wait=0, max_wait=0, jitter=0)
        assert attempts == 1

    @pytest.mark.asyncio
    async def test_stop_event_ends_retries_with_last_error(self):
        stop = asyncio.Event()
        attempts = 0

        async def operation():
            nonlocal attempts
            attempts += 1
            stop.set()
            raise RuntimeError("api down")

        with pytest.raises(RuntimeError, match="api down"):
            await retry_until_stopped(operation, stop_event=stop, min_wait=0, max_wait=0, jitter=0)
        assert attempts == 1

    @pytest.mark.asyncio
    async def test_backoff_grows_across_consecutive_failures(self):
        delays = await self._failing_delays(healthy=lambda: False)
        assert delays == [0.001, 0.002, 0.004, 0.008]

    @pytest.mark.asyncio
    async def test_backoff_restarts_after_healthy_attempt(self):
        delays = await self._failing_delays(healthy=lambda: True)
        assert delays == [0.001] * 4

    @pytest.mark.asyncio
    async def test_backoff_restarts_only_from_the_healthy_attempt(self):
        healthy_attempts = {3}
        attempt = 0

        def healthy() -> bool:
            return attempt in healthy_attempts

        async def operation():
            nonlocal attempt
            attempt += 1
            raise RuntimeError("transient")

        delays: list[float] = []
        stop = asyncio.Event()

        def notify(exc: BaseException, delay: float) -> None:
            delays.append(delay)
            if len(delays) == 5:
                stop.set()

        with pytest.raises(RuntimeError):
            await retry_until_stopped(
                operation, stop_event=stop, notify=notify, healthy=healthy,
                multiplier=0.001, min_wait=0, jitter=0,
            )
        assert delays == [0.001, 0.002, 0.001, 0.002, 0.004]

    @staticmethod
    async def _failing_delays(healthy) -> list[float]:
        """Delays notified over five attempts that each fail once."""
        delays: list[float] = []
        stop = asyncio.Event()

        async def operation():
            if len(delays) == 4:
                stop.set()
            raise RuntimeError("transient")

        with pytest.raises(RuntimeError):
            await retry_until_stopped(
                operation,
                stop_event=stop,
                notify=lambda exc, delay: delays.append(delay),
                healthy=healthy,
                multiplier=0.001,
                min_wait=0,
                jitter=0,
            )
        return delays

"""
ecs_discovery.tier1_runtime.paging
────────────────────────────────────
Cursor pagination and request batching for AWS list/describe APIs.

A PageFetcher is any async callable taking the previous page's cursor
(None for the first request) and returning a typed Page. collect_pages()
drives it to exhaustion; chunked() keeps id lists under the API's batch
ceiling.

Usage:
    arns = await collect_pages(lambda cursor: api.list_running_tasks("prod", cursor))
    for batch in chunked(arns):
        tasks.extend(await api.describe_tasks("prod", batch))
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

# DescribeTasks and DescribeContainerInstances accept at most 100 ids per call
MAX_BATCH = 100


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a listing call. next_cursor is None on the last page."""
    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None


class PageFetcher(Protocol[T_co]):
    async def __call__(self, cursor: str | None) -> Page[T_co]: ...


async def collect_pages(fetch: PageFetcher[T]) -> list[T]:
    """
    Call fetch() until a page comes back without a continuation cursor and
    return every item in page order. Errors propagate from the failing page;
    nothing collected so far is returned.
    """
    items: list[T] = []
    cursor: str | None = None
    while True:
        page = await fetch(cursor)
        items.extend(page.items)
        if not page.next_cursor:
            return items
        cursor = page.next_cursor


def chunked(ids: Sequence[T], size: int = MAX_BATCH) -> list[list[T]]:
    """Split ids into order-preserving batches of at most size. Empty in, empty out."""
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(ids[i:i + size]) for i in range(0, len(ids), size)]


__all__ = ["MAX_BATCH", "Page", "PageFetcher", "collect_pages", "chunked"]

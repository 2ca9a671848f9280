"""
ecs_discovery.tier1_runtime.context
─────────────────────────────────────
Poll context: a correlation id per poll cycle, propagated into every log
line emitted while that poll runs (including from worker threads started
with asyncio.to_thread, which copy the current context).

Uses Python contextvars; synced with structlog contextvars.
"""
from __future__ import annotations

import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field

from ecs_discovery.tier0_core.logging import bind_context, clear_context


# ── Domain model ─────────────────────────────────────────────────────────────

@dataclass
class PollContext:
    """Metadata for one discovery poll."""
    poll_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: float = field(default_factory=time.monotonic)
    provider: str = "ecs"

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


# ── ContextVar storage ────────────────────────────────────────────────────────

_ctx: ContextVar[PollContext | None] = ContextVar("ecs_poll_context", default=None)


# ── Public API ────────────────────────────────────────────────────────────────

def get_poll_context() -> PollContext | None:
    """Return the context of the poll running in this task, if any."""
    return _ctx.get()


def new_poll_context(provider: str = "ecs") -> PollContext:
    """Create and activate a fresh poll context. Returns the new context."""
    ctx = PollContext(provider=provider)
    _ctx.set(ctx)
    bind_context(poll_id=ctx.poll_id, provider=ctx.provider)
    return ctx


def end_poll_context() -> None:
    _ctx.set(None)
    clear_context()


__all__ = ["PollContext", "get_poll_context", "new_poll_context", "end_poll_context"]

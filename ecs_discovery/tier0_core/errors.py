"""
ecs_discovery.tier0_core.errors
─────────────────────────────────
Error taxonomy for the provider. Errors raised by AWS while a poll is
running are NOT wrapped: botocore's ClientError / BotoCoreError propagate
unchanged so the retry layer sees the real failure, and asyncio's
CancelledError is never caught inside the discovery engine.

The classes below cover failures that happen around the poll: bad
configuration and client construction.
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class DiscoveryError(Exception):
    """
    Base class for provider errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - user_message: safe to surface to operators
    - detail: internal context
    """

    code: str = "discovery_error"
    retryable: bool = True

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "ECS discovery failed.",
        detail: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.user_message = user_message
        self.detail = detail or user_message
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
                **({"metadata": self.metadata} if self.metadata else {}),
            }
        }


# ── Typed error classes ───────────────────────────────────────────────────────

class ConfigurationError(DiscoveryError):
    """Misconfiguration detected at startup. Never retried."""
    code = "configuration_error"
    retryable = False


class UpstreamError(DiscoveryError):
    """AWS could not be reached while building the client (e.g. metadata endpoint)."""
    code = "upstream_error"


__all__ = ["DiscoveryError", "ConfigurationError", "UpstreamError"]

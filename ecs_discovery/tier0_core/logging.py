"""
ecs_discovery.tier0_core.logging
──────────────────────────────────
structlog setup for the provider.

Level and renderer come from DiscoveryConfig (ECS_LOG_LEVEL, ECS_LOG_FORMAT).
Every event carries the fields bound for the running poll (poll_id,
provider), and credential fields are masked before anything is rendered.
botocore and urllib3 log through the same stdout handler; they stay at
WARNING unless ECS_TRACE is on, which turns botocore request tracing on.

The daemon calls configure_logging(config) at startup. get_logger() falls
back to get_config() if nothing configured logging yet.

Usage::

    log = get_logger(__name__)
    log.info("poll.completed", services=14, duration_s=0.82)
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from ecs_discovery.tier0_core.config import DiscoveryConfig, get_config

_CREDENTIAL_KEYS = frozenset({
    "password", "secret", "token", "session_token", "aws_session_token",
    "secret_access_key", "aws_secret_access_key", "access_key_id",
    "aws_access_key_id", "authorization", "credential", "credentials",
})
_REDACTED = "[REDACTED]"

_AWS_LOGGERS = ("botocore", "boto3", "urllib3")

_handler: logging.Handler | None = None


def _redact_processor(logger: Any, method: str, event_dict: dict) -> dict:
    """Mask credential-like keys, whatever their case."""
    for key in list(event_dict):
        if key.lower() in _CREDENTIAL_KEYS:
            event_dict[key] = _REDACTED
    return event_dict


def configure_logging(config: DiscoveryConfig | None = None) -> None:
    """
    (Re)configure structlog and the root stdlib handler from config.
    Safe to call again: the previous handler is replaced, not duplicated.
    """
    global _handler
    config = config or get_config()
    level = getattr(logging, config.log_level)

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _redact_processor,
    ]
    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(level)
    _handler = handler

    aws_level = logging.DEBUG if config.trace else logging.WARNING
    for name in _AWS_LOGGERS:
        logging.getLogger(name).setLevel(aws_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    if _handler is None:
        configure_logging()
    return structlog.get_logger(name or __name__)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every later log line of the current task or thread."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = ["configure_logging", "get_logger", "bind_context", "clear_context"]

"""Docker label keys read by the filter and translator, and their parsing."""
from __future__ import annotations

from collections.abc import Mapping

LABEL_ENABLE = "traefik.enable"
LABEL_PORT = "traefik.port"
LABEL_PROTOCOL = "traefik.protocol"
LABEL_WEIGHT = "traefik.weight"
LABEL_FRONTEND_RULE = "traefik.frontend.rule"

_TRUE = frozenset({"1", "t", "true"})
_FALSE = frozenset({"0", "f", "false"})


def get_label(labels: Mapping[str, str], key: str, default: str = "") -> str:
    value = labels.get(key)
    return value if value else default


def parse_bool(value: str | None) -> bool | None:
    """Parse 1/t/true/0/f/false (any case). None when absent or unparsable."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    return None


def get_bool_label(labels: Mapping[str, str], key: str, default: bool) -> bool:
    parsed = parse_bool(labels.get(key))
    return default if parsed is None else parsed


def get_int_label(labels: Mapping[str, str], key: str, default: int) -> int:
    try:
        return int(labels.get(key, ""))
    except ValueError:
        return default

"""
ecs_discovery.tier3_provider.translate
────────────────────────────────────────
Turn grouped ServiceInstances into the routing configuration document sent
downstream: one backend per service with one server per instance, and one
frontend per service routing to it.

Shape::

    {
      "backends":  {"backend-<name>":  {"servers": {"server-<id>": {"url": ..., "weight": 0}}}},
      "frontends": {"frontend-<name>": {"backend": "backend-<name>", "routes": {...}}},
    }
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier2_discovery.labels import (
    LABEL_FRONTEND_RULE,
    LABEL_PORT,
    LABEL_PROTOCOL,
    LABEL_WEIGHT,
    get_int_label,
    get_label,
)
from ecs_discovery.tier2_discovery.models import ServiceInstance

logger = get_logger(__name__)


def instance_port(instance: ServiceInstance) -> str | None:
    """traefik.port label, else the host port of the first network binding."""
    port = get_label(instance.labels, LABEL_PORT)
    if port:
        return port
    for binding in instance.network_bindings:
        host_port = binding.get("hostPort")
        if host_port:
            return str(host_port)
    return None


def frontend_rule(service: str, instance: ServiceInstance, domain: str) -> str:
    default = f"Host:{service.lower()}.{domain}" if domain else f"Host:{service.lower()}"
    return get_label(instance.labels, LABEL_FRONTEND_RULE, default)


def build_configuration(
    services: Mapping[str, list[ServiceInstance]], domain: str = ""
) -> dict[str, Any]:
    backends: dict[str, Any] = {}
    frontends: dict[str, Any] = {}

    for service, instances in services.items():
        servers: dict[str, Any] = {}
        for instance in instances:
            port = instance_port(instance)
            if port is None:
                logger.warning("translate.no_port", name=instance.name, id=instance.id)
                continue
            protocol = get_label(instance.labels, LABEL_PROTOCOL, "http")
            servers[f"server-{instance.id}"] = {
                "url": f"{protocol}://{instance.private_ip}:{port}",
                "weight": get_int_label(instance.labels, LABEL_WEIGHT, 0),
            }
        if not servers:
            continue

        backend = f"backend-{service}"
        backends[backend] = {"servers": servers}
        frontends[f"frontend-{service}"] = {
            "backend": backend,
            "routes": {
                f"route-frontend-{service}": {"rule": frontend_rule(service, instances[0], domain)},
            },
        }

    return {"backends": backends, "frontends": frontends}


__all__ = ["instance_port", "frontend_rule", "build_configuration"]

"""Group service instances by service name, keeping first-seen and append order."""
from __future__ import annotations

from collections.abc import Iterable

from ecs_discovery.tier2_discovery.models import ServiceInstance

ServiceGroups = dict[str, list[ServiceInstance]]


def group_by_service(instances: Iterable[ServiceInstance]) -> ServiceGroups:
    services: ServiceGroups = {}
    for instance in instances:
        services.setdefault(instance.name, []).append(instance)
    return services


__all__ = ["ServiceGroups", "group_by_service"]

"""
ecs_discovery.tier2_discovery.filters
───────────────────────────────────────
Inclusion policy for assembled ServiceInstances.

An instance is dropped when:
  - its container has no network binding and no traefik.port label
  - its EC2 host, host state or state name is unknown
  - the host is not running
  - the host has no private IP
  - it is not enabled: traefik.enable wins when set, otherwise the
    exposed_by_default setting decides

Each rejection is logged at debug level with its own event name and counted
per reason. The filter never modifies an instance.
"""
from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier0_core.metrics import instances_filtered
from ecs_discovery.tier2_discovery.labels import LABEL_ENABLE, LABEL_PORT, get_bool_label, get_label
from ecs_discovery.tier2_discovery.models import ServiceInstance

logger = get_logger(__name__)

RUNNING = "running"


class RejectReason(str, Enum):
    NO_PORT = "no_port"
    MISSING_MACHINE = "missing_machine"
    NOT_RUNNING = "not_running"
    NO_IP = "no_ip"
    DISABLED = "disabled"


def is_enabled(instance: ServiceInstance, exposed_by_default: bool) -> bool:
    return get_bool_label(instance.labels, LABEL_ENABLE, exposed_by_default)


class InstanceFilter:
    """
    Usage::

        keep = InstanceFilter(exposed_by_default=config.exposed_by_default)
        survivors = keep.apply(instances)
    """

    def __init__(self, exposed_by_default: bool = True) -> None:
        self.exposed_by_default = exposed_by_default

    def reject_reason(self, instance: ServiceInstance) -> RejectReason | None:
        """First failing rule, or None when the instance is kept."""
        if not instance.network_bindings and not get_label(instance.labels, LABEL_PORT):
            return RejectReason.NO_PORT
        if instance.machine_state is None:
            return RejectReason.MISSING_MACHINE
        if instance.machine_state != RUNNING:
            return RejectReason.NOT_RUNNING
        if not instance.private_ip:
            return RejectReason.NO_IP
        if not is_enabled(instance, self.exposed_by_default):
            return RejectReason.DISABLED
        return None

    def __call__(self, instance: ServiceInstance) -> bool:
        reason = self.reject_reason(instance)
        if reason is None:
            return True
        logger.debug(
            f"filter.{reason.value}",
            name=instance.name,
            id=instance.id,
            **({"state": instance.machine_state} if reason is RejectReason.NOT_RUNNING else {}),
        )
        instances_filtered(reason=reason.value).inc()
        return False

    def apply(self, instances: Iterable[ServiceInstance]) -> list[ServiceInstance]:
        return [i for i in instances if self(i)]


__all__ = ["RUNNING", "RejectReason", "InstanceFilter", "is_enabled"]

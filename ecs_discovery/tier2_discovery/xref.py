"""
ecs_discovery.tier2_discovery.xref
────────────────────────────────────
Resolve the records a cluster's tasks point at: the EC2 host behind each
container instance, and each task definition.

Both resolvers return a list aligned with the OrderedIndex they were given,
so record lookup during assembly is a position lookup.
"""
from __future__ import annotations

from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier1_runtime.paging import chunked, collect_pages
from ecs_discovery.tier2_discovery.api import EcsApi, Machine, TaskDefinition
from ecs_discovery.tier2_discovery.models import OrderedIndex

logger = get_logger(__name__)


async def resolve_machines(
    api: EcsApi,
    cluster: str,
    container_instances: OrderedIndex[str],
) -> list[Machine | None]:
    """
    Return the EC2 instance hosting each container instance, by position.

    DescribeContainerInstances gives the EC2 id of each container instance;
    the slot map then holds both the container instance arn and the EC2 id,
    pointing at the same position, so DescribeInstances results can be placed
    whatever order they come back in. Hosts that are not returned (terminated
    in between) leave their slot None.
    """
    slots: dict[str, int] = dict(container_instances.positions)
    instance_ids: list[str] = []

    for batch in chunked(container_instances.keys):
        records = await collect_pages(
            lambda cursor, batch=batch: api.describe_container_instances(cluster, batch, cursor)
        )
        for record in records:
            slot = slots.get(record.get("containerInstanceArn"))
            instance_id = record.get("ec2InstanceId")
            if slot is None or not instance_id:
                continue
            if instance_id not in slots:
                instance_ids.append(instance_id)
            slots[instance_id] = slot

    machines: list[Machine | None] = [None] * len(container_instances)
    for batch in chunked(instance_ids):
        for machine in await collect_pages(
            lambda cursor, batch=batch: api.describe_machines(batch, cursor)
        ):
            slot = slots.get(machine.get("InstanceId"))
            if slot is not None:
                machines[slot] = machine

    missing = sum(1 for m in machines if m is None)
    if missing:
        logger.debug("xref.machines_missing", cluster=cluster, missing=missing)
    return machines


async def resolve_task_definitions(
    api: EcsApi,
    task_definitions: OrderedIndex[str],
) -> list[TaskDefinition]:
    """One DescribeTaskDefinition per distinct arn; the API takes a single arn."""
    return [await api.describe_task_definition(arn) for arn in task_definitions]


__all__ = ["resolve_machines", "resolve_task_definitions"]

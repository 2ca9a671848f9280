"""
ecs_discovery.tier2_discovery.assemble
────────────────────────────────────────
Join tasks, containers, task definitions and hosts into ServiceInstance
records, one per (task, container).
"""
from __future__ import annotations

from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier2_discovery.api import (
    ContainerDefinition,
    Machine,
    TaskDefinition,
)
from ecs_discovery.tier2_discovery.models import ClusterTasks, ServiceInstance

logger = get_logger(__name__)


def service_name(group: str, container_name: str) -> str:
    """'service:web' + 'app' -> 'service-web-app'. Only the first colon is replaced."""
    return f"{group.replace(':', '-', 1)}-{container_name}"


def short_id(task_arn: str) -> str:
    return task_arn[-12:]


def match_container_definition(
    task_definition: TaskDefinition, container_name: str
) -> ContainerDefinition | None:
    """First container definition with this name; duplicates after it are ignored."""
    for definition in task_definition.get("containerDefinitions") or []:
        if definition.get("name") == container_name:
            return definition
    return None


def assemble_instances(
    cluster_tasks: ClusterTasks,
    machines: list[Machine | None],
    task_definitions: list[TaskDefinition],
) -> list[ServiceInstance]:
    """
    Build the cluster's ServiceInstances in task order, then container order.

    machines and task_definitions are aligned with the ClusterTasks indexes.
    """
    instances: list[ServiceInstance] = []
    for task in cluster_tasks.tasks:
        definition_pos = cluster_tasks.task_definitions.position(task.get("taskDefinitionArn"))
        if definition_pos is None:
            logger.warning("assemble.no_task_definition", task=task.get("taskArn"))
            continue
        task_definition = task_definitions[definition_pos]

        machine_pos = cluster_tasks.container_instances.position(task.get("containerInstanceArn"))
        machine = machines[machine_pos] if machine_pos is not None else None

        for container in task.get("containers") or []:
            name = container.get("name", "")
            instances.append(ServiceInstance(
                name=service_name(task.get("group", ""), name),
                id=short_id(task["taskArn"]),
                task=task,
                task_definition=task_definition,
                container=container,
                container_definition=match_container_definition(task_definition, name),
                machine=machine,
            ))
    return instances


__all__ = ["service_name", "short_id", "match_container_definition", "assemble_instances"]

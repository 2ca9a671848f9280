"""
ecs_discovery.tier2_discovery.api
───────────────────────────────────
The remote service contracts the discovery engine depends on. Records are the
plain dicts the ECS / EC2 APIs return (camelCase for ECS, PascalCase for EC2);
the engine only reads the handful of keys it needs.

Swap implementations without touching the engine: the boto3 adapter lives in
tier3_provider.aws, tests use an in-memory fake.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ecs_discovery.tier1_runtime.paging import Page

# ECS: taskArn, group, containerInstanceArn, taskDefinitionArn, containers[]
Task = dict[str, Any]
# ECS: name, networkBindings[]
Container = dict[str, Any]
# ECS: taskDefinitionArn, containerDefinitions[]
TaskDefinition = dict[str, Any]
# ECS: name, dockerLabels{}
ContainerDefinition = dict[str, Any]
# ECS: containerInstanceArn, ec2InstanceId
ContainerInstance = dict[str, Any]
# EC2: InstanceId, State{Name}, PrivateIpAddress
Machine = dict[str, Any]


@runtime_checkable
class EcsApi(Protocol):
    """Async view of the ECS and EC2 calls used by one poll."""

    async def list_clusters(self, cursor: str | None) -> Page[str]: ...

    async def list_running_tasks(self, cluster: str, cursor: str | None) -> Page[str]: ...

    async def describe_tasks(self, cluster: str, task_arns: list[str]) -> list[Task]: ...

    async def describe_container_instances(
        self, cluster: str, arns: list[str], cursor: str | None
    ) -> Page[ContainerInstance]: ...

    async def describe_machines(self, instance_ids: list[str], cursor: str | None) -> Page[Machine]: ...

    async def describe_task_definition(self, arn: str) -> TaskDefinition: ...


__all__ = [
    "EcsApi",
    "Task", "Container", "TaskDefinition", "ContainerDefinition",
    "ContainerInstance", "Machine",
]

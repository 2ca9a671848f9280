"""
ecs_discovery.tier2_discovery.memory
──────────────────────────────────────
In-memory EcsApi for tests and local runs. Holds clusters, tasks, container
instances, EC2 hosts and task definitions; pages results page_size at a time
and records every call so tests can assert on call counts.

NOT a model of AWS consistency. Use for tests and local dev only.

Usage::

    api = InMemoryEcsApi(page_size=2)
    api.add_host("ci-1", "i-0001", private_ip="10.0.0.5")
    api.add_task_definition("td-web", [{"name": "web", "dockerLabels": {}}])
    api.add_task("prod", "0123456789abcdef", group="service:web",
                 task_definition="td-web", container_instance="ci-1",
                 containers=[{"name": "web", "networkBindings": [{"hostPort": 32768}]}])
"""
from __future__ import annotations

import asyncio
from typing import Any, TypeVar

from ecs_discovery.tier1_runtime.paging import Page
from ecs_discovery.tier2_discovery.api import (
    ContainerInstance,
    Machine,
    Task,
    TaskDefinition,
)

T = TypeVar("T")


class InMemoryEcsApi:
    def __init__(self, page_size: int = 100) -> None:
        self.page_size = page_size
        self.clusters: list[str] = []
        self.tasks: dict[str, list[Task]] = {}
        self.container_instances: dict[str, ContainerInstance] = {}
        self.machines: dict[str, Machine] = {}
        self.task_definitions: dict[str, TaskDefinition] = {}
        self.reverse_machines = False
        self.calls: list[tuple[str, Any]] = []
        self._errors: dict[str, BaseException] = {}
        self._holds: dict[str, asyncio.Event] = {}

    # ── Seeding ───────────────────────────────────────────────────────────────

    def add_cluster(self, name: str) -> None:
        if name not in self.clusters:
            self.clusters.append(name)
            self.tasks.setdefault(name, [])

    def add_host(
        self,
        container_instance: str,
        instance_id: str,
        *,
        state: str | None = "running",
        private_ip: str | None = "10.0.0.1",
        register_machine: bool = True,
    ) -> None:
        """Register a container instance and (unless told not to) its EC2 host."""
        self.container_instances[container_instance] = {
            "containerInstanceArn": container_instance,
            "ec2InstanceId": instance_id,
        }
        if not register_machine:
            return
        machine: Machine = {"InstanceId": instance_id}
        if state is not None:
            machine["State"] = {"Name": state}
        if private_ip is not None:
            machine["PrivateIpAddress"] = private_ip
        self.machines[instance_id] = machine

    def add_task_definition(self, arn: str, container_definitions: list[dict[str, Any]]) -> None:
        self.task_definitions[arn] = {
            "taskDefinitionArn": arn,
            "containerDefinitions": container_definitions,
        }

    def add_task(
        self,
        cluster: str,
        task_id: str,
        *,
        group: str,
        task_definition: str,
        container_instance: str | None,
        containers: list[dict[str, Any]],
    ) -> Task:
        self.add_cluster(cluster)
        task: Task = {
            "taskArn": f"arn:aws:ecs:us-east-1:000000000000:task/{cluster}/{task_id}",
            "group": group,
            "lastStatus": "RUNNING",
            "taskDefinitionArn": task_definition,
            "containers": containers,
        }
        if container_instance is not None:
            task["containerInstanceArn"] = container_instance
        self.tasks[cluster].append(task)
        return task

    # ── Fault injection ───────────────────────────────────────────────────────

    def fail(self, method: str, error: BaseException) -> None:
        """Make every later call to method raise error."""
        self._errors[method] = error

    def hold(self, method: str) -> asyncio.Event:
        """
        Make calls to method block forever. Returns an event set once a call
        is blocked, so a test can cancel at exactly that point.
        """
        entered = asyncio.Event()
        self._holds[method] = entered
        return entered

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if method in self._errors:
            raise self._errors[method]
        entered = self._holds.get(method)
        if entered is not None:
            entered.set()
            await asyncio.Event().wait()
        await asyncio.sleep(0)

    def _page(self, items: list[T], cursor: str | None) -> Page[T]:
        start = int(cursor or 0)
        end = start + self.page_size
        return Page(items[start:end], str(end) if end < len(items) else None)

    # ── EcsApi ────────────────────────────────────────────────────────────────

    async def list_clusters(self, cursor: str | None) -> Page[str]:
        await self._enter("list_clusters", cursor)
        return self._page(self.clusters, cursor)

    async def list_running_tasks(self, cluster: str, cursor: str | None) -> Page[str]:
        await self._enter("list_running_tasks", cluster, cursor)
        arns = [t["taskArn"] for t in self.tasks.get(cluster, [])]
        return self._page(arns, cursor)

    async def describe_tasks(self, cluster: str, task_arns: list[str]) -> list[Task]:
        await self._enter("describe_tasks", cluster, list(task_arns))
        by_arn = {t["taskArn"]: t for t in self.tasks.get(cluster, [])}
        return [by_arn[arn] for arn in task_arns if arn in by_arn]

    async def describe_container_instances(
        self, cluster: str, arns: list[str], cursor: str | None
    ) -> Page[ContainerInstance]:
        await self._enter("describe_container_instances", cluster, list(arns), cursor)
        found = [self.container_instances[a] for a in arns if a in self.container_instances]
        return self._page(found, cursor)

    async def describe_machines(self, instance_ids: list[str], cursor: str | None) -> Page[Machine]:
        await self._enter("describe_machines", list(instance_ids), cursor)
        found = [self.machines[i] for i in instance_ids if i in self.machines]
        if self.reverse_machines:
            found.reverse()
        return self._page(found, cursor)

    async def describe_task_definition(self, arn: str) -> TaskDefinition:
        await self._enter("describe_task_definition", arn)
        return self.task_definitions[arn]


__all__ = ["InMemoryEcsApi"]

"""
ecs_discovery.tier2_discovery.models
──────────────────────────────────────
Per-poll data structures. Everything here is built fresh for one poll and
dropped once the snapshot has been handed off.
"""
from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Generic, TypeVar

from ecs_discovery.tier2_discovery.api import (
    Container,
    ContainerDefinition,
    Machine,
    Task,
    TaskDefinition,
)

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class OrderedIndex(Generic[K]):
    """
    Distinct keys in first-seen order plus a key → position map.
    Immutable once built.
    """
    keys: tuple[K, ...] = ()
    positions: Mapping[K, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, keys: Iterable[K | None]) -> OrderedIndex[K]:
        """Index keys, skipping None and repeats."""
        ordered: list[K] = []
        positions: dict[K, int] = {}
        for key in keys:
            if key is None or key in positions:
                continue
            positions[key] = len(ordered)
            ordered.append(key)
        return cls(tuple(ordered), MappingProxyType(positions))

    def position(self, key: K | None) -> int | None:
        if key is None:
            return None
        return self.positions.get(key)

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys)

    def __contains__(self, key: object) -> bool:
        return key in self.positions


@dataclass(frozen=True)
class ClusterTasks:
    """Running tasks of one cluster plus the distinct ids they reference."""
    cluster: str
    tasks: tuple[Task, ...]
    container_instances: OrderedIndex[str]
    task_definitions: OrderedIndex[str]


@dataclass(frozen=True)
class ServiceInstance:
    """
    One container of one running task, joined with its task definition,
    container definition and host EC2 instance.

    container_definition is None when the task definition has no container
    of the same name; machine is None when the host could not be resolved.
    """
    name: str
    id: str
    task: Task
    task_definition: TaskDefinition
    container: Container
    container_definition: ContainerDefinition | None
    machine: Machine | None

    @property
    def labels(self) -> Mapping[str, str]:
        if self.container_definition is None:
            return MappingProxyType({})
        return MappingProxyType(self.container_definition.get("dockerLabels") or {})

    @property
    def network_bindings(self) -> list[dict]:
        return self.container.get("networkBindings") or []

    @property
    def private_ip(self) -> str | None:
        if self.machine is None:
            return None
        return self.machine.get("PrivateIpAddress")

    @property
    def machine_state(self) -> str | None:
        if self.machine is None:
            return None
        state = self.machine.get("State")
        if state is None:
            return None
        return state.get("Name")


__all__ = ["OrderedIndex", "ClusterTasks", "ServiceInstance"]

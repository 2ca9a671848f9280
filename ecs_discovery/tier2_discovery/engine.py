"""
ecs_discovery.tier2_discovery.engine
──────────────────────────────────────
One discovery poll: clusters → tasks → cross references → ServiceInstances
→ policy filter → groups by service name.

Everything runs sequentially inside one coroutine. poll() either returns a
complete snapshot covering every cluster, or raises: an AWS error propagates
unchanged, and cancelling the task running poll() raises CancelledError at
the pending call. No state survives between polls.

Usage::

    discoverer = Discoverer(api, config.cluster_selection(),
                            InstanceFilter(config.exposed_by_default))
    services = await discoverer.poll()
"""
from __future__ import annotations

from ecs_discovery.tier0_core.config import ClusterSelection
from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier0_core.metrics import poll_duration
from ecs_discovery.tier1_runtime.context import end_poll_context, new_poll_context
from ecs_discovery.tier2_discovery.api import EcsApi
from ecs_discovery.tier2_discovery.assemble import assemble_instances
from ecs_discovery.tier2_discovery.clusters import resolve_clusters
from ecs_discovery.tier2_discovery.filters import InstanceFilter
from ecs_discovery.tier2_discovery.grouping import ServiceGroups, group_by_service
from ecs_discovery.tier2_discovery.models import ServiceInstance
from ecs_discovery.tier2_discovery.tasks import enumerate_tasks
from ecs_discovery.tier2_discovery.xref import resolve_machines, resolve_task_definitions

logger = get_logger(__name__)


class Discoverer:
    def __init__(
        self,
        api: EcsApi,
        selection: ClusterSelection,
        instance_filter: InstanceFilter | None = None,
    ) -> None:
        self._api = api
        self._selection = selection
        self._filter = instance_filter or InstanceFilter()

    async def discover_cluster(self, cluster: str) -> list[ServiceInstance]:
        """Assembled, unfiltered ServiceInstances of one cluster."""
        cluster_tasks = await enumerate_tasks(self._api, cluster)
        if cluster_tasks is None:
            return []

        machines = await resolve_machines(self._api, cluster, cluster_tasks.container_instances)
        task_definitions = await resolve_task_definitions(self._api, cluster_tasks.task_definitions)
        return assemble_instances(cluster_tasks, machines, task_definitions)

    async def list_instances(self) -> list[ServiceInstance]:
        """Assembled ServiceInstances of every cluster, in cluster order."""
        clusters = await resolve_clusters(self._api, self._selection)
        instances: list[ServiceInstance] = []
        for cluster in clusters:
            instances.extend(await self.discover_cluster(cluster))
        return instances

    async def poll(self) -> ServiceGroups:
        """Run one full poll and return surviving instances grouped by service name."""
        ctx = new_poll_context()
        try:
            instances = await self.list_instances()
            survivors = self._filter.apply(instances)
            services = group_by_service(survivors)
            poll_duration().observe(ctx.elapsed)
            logger.info(
                "poll.completed",
                instances=len(instances),
                kept=len(survivors),
                services=len(services),
                duration_s=round(ctx.elapsed, 3),
            )
            return services
        finally:
            end_poll_context()


__all__ = ["Discoverer"]

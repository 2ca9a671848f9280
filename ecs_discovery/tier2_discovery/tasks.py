"""
ecs_discovery.tier2_discovery.tasks
─────────────────────────────────────
Enumerate the running tasks of one cluster.

ListTasks is paged; DescribeTasks takes at most MAX_BATCH arns, so the arns
are chunked. While reading the task records, the distinct container instance
arns and task definition arns are indexed in first-seen order; later stages
resolve each id once and look records up by position.
"""
from __future__ import annotations

from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier1_runtime.paging import chunked, collect_pages
from ecs_discovery.tier2_discovery.api import EcsApi, Task
from ecs_discovery.tier2_discovery.models import ClusterTasks, OrderedIndex

logger = get_logger(__name__)


async def list_task_arns(api: EcsApi, cluster: str) -> list[str]:
    """All RUNNING task arns of the cluster, across every ListTasks page."""
    return await collect_pages(lambda cursor: api.list_running_tasks(cluster, cursor))


async def describe_tasks(api: EcsApi, cluster: str, task_arns: list[str]) -> list[Task]:
    tasks: list[Task] = []
    for batch in chunked(task_arns):
        tasks.extend(await api.describe_tasks(cluster, batch))
    return tasks


async def enumerate_tasks(api: EcsApi, cluster: str) -> ClusterTasks | None:
    """
    Describe every running task of the cluster.

    Returns None when the cluster has no running task; no describe call is
    made in that case. Any failing call raises and nothing is returned for
    the cluster.
    """
    task_arns = await list_task_arns(api, cluster)
    if not task_arns:
        logger.debug("cluster.empty", cluster=cluster)
        return None

    tasks = await describe_tasks(api, cluster, task_arns)

    container_instances = OrderedIndex.build(t.get("containerInstanceArn") for t in tasks)
    task_definitions = OrderedIndex.build(t.get("taskDefinitionArn") for t in tasks)

    logger.debug(
        "cluster.tasks",
        cluster=cluster,
        tasks=len(tasks),
        container_instances=len(container_instances),
        task_definitions=len(task_definitions),
    )
    return ClusterTasks(
        cluster=cluster,
        tasks=tuple(tasks),
        container_instances=container_instances,
        task_definitions=task_definitions,
    )


__all__ = ["list_task_arns", "describe_tasks", "enumerate_tasks"]

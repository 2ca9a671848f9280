"""
ecs_discovery.tier2_discovery.clusters
────────────────────────────────────────
Work out which clusters a poll covers.
"""
from __future__ import annotations

from ecs_discovery.tier0_core.config import ClusterSelection
from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier1_runtime.paging import collect_pages
from ecs_discovery.tier2_discovery.api import EcsApi

logger = get_logger(__name__)


async def resolve_clusters(api: EcsApi, selection: ClusterSelection) -> list[str]:
    """
    Return the ordered cluster list for this poll.

    Auto-discovery pages through ListClusters and keeps the API's order.
    Otherwise the configured names are used as-is; the legacy single-cluster
    field only adds a deprecation warning. An empty list is not an error.
    """
    if selection.auto_discover:
        clusters = await collect_pages(api.list_clusters)
    else:
        if selection.legacy:
            logger.warning(
                "config.deprecated",
                field="ecs.cluster",
                replacement="ecs.clusters",
                detail="Deprecated configuration found: ecs.cluster. Please use ecs.clusters instead.",
            )
        clusters = list(selection.names)

    logger.debug("clusters.resolved", clusters=clusters, auto_discover=selection.auto_discover)
    return clusters


__all__ = ["resolve_clusters"]

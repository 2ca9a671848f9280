"""
ecs_discovery
─────────────
Stable top-level exports. Import from here, not from sub-modules directly.
"""
from ecs_discovery.tier0_core.logging import configure_logging, get_logger
from ecs_discovery.tier0_core.errors import (
    DiscoveryError,
    ConfigurationError,
    UpstreamError,
)
from ecs_discovery.tier0_core.config import get_config, DiscoveryConfig, ClusterSelection

from ecs_discovery.tier1_runtime.paging import Page, collect_pages, chunked, MAX_BATCH

from ecs_discovery.tier2_discovery.api import EcsApi
from ecs_discovery.tier2_discovery.models import ServiceInstance, OrderedIndex
from ecs_discovery.tier2_discovery.filters import InstanceFilter, RejectReason
from ecs_discovery.tier2_discovery.grouping import group_by_service
from ecs_discovery.tier2_discovery.engine import Discoverer

from ecs_discovery.tier3_provider.aws import Boto3EcsApi, create_client
from ecs_discovery.tier3_provider.translate import build_configuration
from ecs_discovery.tier3_provider.provider import EcsProvider, ConfigMessage

__version__ = "0.1.0"
__all__ = [
    # logging
    "configure_logging", "get_logger",
    # errors
    "DiscoveryError", "ConfigurationError", "UpstreamError",
    # config
    "get_config", "DiscoveryConfig", "ClusterSelection",
    # paging
    "Page", "collect_pages", "chunked", "MAX_BATCH",
    # discovery
    "EcsApi", "ServiceInstance", "OrderedIndex", "InstanceFilter", "RejectReason",
    "group_by_service", "Discoverer",
    # provider
    "Boto3EcsApi", "create_client", "build_configuration", "EcsProvider", "ConfigMessage",
]

"""
ecs_discovery.tier3_provider.aws
──────────────────────────────────
boto3 implementation of the EcsApi contracts, and client construction.

boto3 is blocking; every call runs in a worker thread through
asyncio.to_thread so the event loop stays free and the poll task can be
cancelled at any call. botocore's connect/read timeouts bound how long an
abandoned thread can linger. botocore's own retries are switched off: a
failed call fails the poll and the provider's backoff takes over.

Region: ECS_REGION, else the EC2 instance identity document.
Credentials: ECS_ACCESS_KEY_ID + ECS_SECRET_ACCESS_KEY when both are set (one
without the other is a ConfigurationError),
otherwise boto3's default chain (env, shared file, container/instance role).
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.utils import InstanceMetadataRegionFetcher

from ecs_discovery.tier0_core.config import DiscoveryConfig
from ecs_discovery.tier0_core.errors import ConfigurationError, UpstreamError
from ecs_discovery.tier0_core.logging import get_logger
from ecs_discovery.tier1_runtime.paging import Page
from ecs_discovery.tier2_discovery.api import (
    ContainerInstance,
    Machine,
    Task,
    TaskDefinition,
)

logger = get_logger(__name__)


def _token(key: str, cursor: str | None) -> dict[str, str]:
    return {key: cursor} if cursor else {}


class Boto3EcsApi:
    """EcsApi backed by boto3 ``ecs`` and ``ec2`` clients. Shared read-only across polls."""

    def __init__(self, ecs: Any, ec2: Any) -> None:
        self._ecs = ecs
        self._ec2 = ec2

    @staticmethod
    async def _call(fn: Callable[..., dict[str, Any]], **kwargs: Any) -> dict[str, Any]:
        return await asyncio.to_thread(fn, **kwargs)

    async def list_clusters(self, cursor: str | None) -> Page[str]:
        resp = await self._call(self._ecs.list_clusters, **_token("nextToken", cursor))
        return Page(resp.get("clusterArns", []), resp.get("nextToken"))

    async def list_running_tasks(self, cluster: str, cursor: str | None) -> Page[str]:
        resp = await self._call(
            self._ecs.list_tasks,
            cluster=cluster,
            desiredStatus="RUNNING",
            **_token("nextToken", cursor),
        )
        return Page(resp.get("taskArns", []), resp.get("nextToken"))

    async def describe_tasks(self, cluster: str, task_arns: list[str]) -> list[Task]:
        resp = await self._call(self._ecs.describe_tasks, cluster=cluster, tasks=task_arns)
        for failure in resp.get("failures", []):
            logger.debug("aws.describe_tasks_failure", cluster=cluster, arn=failure.get("arn"),
                         reason=failure.get("reason"))
        return resp.get("tasks", [])

    async def describe_container_instances(
        self, cluster: str, arns: list[str], cursor: str | None
    ) -> Page[ContainerInstance]:
        # DescribeContainerInstances answers in one page; cursor is never set
        resp = await self._call(
            self._ecs.describe_container_instances,
            cluster=cluster,
            containerInstances=arns,
        )
        return Page(resp.get("containerInstances", []), None)

    async def describe_machines(self, instance_ids: list[str], cursor: str | None) -> Page[Machine]:
        resp = await self._call(
            self._ec2.describe_instances,
            InstanceIds=instance_ids,
            **_token("NextToken", cursor),
        )
        machines = [
            instance
            for reservation in resp.get("Reservations", [])
            for instance in reservation.get("Instances", [])
            if instance.get("InstanceId")
        ]
        return Page(machines, resp.get("NextToken"))

    async def describe_task_definition(self, arn: str) -> TaskDefinition:
        resp = await self._call(self._ecs.describe_task_definition, taskDefinition=arn)
        return resp["taskDefinition"]


def _region_from_metadata() -> str:
    logger.info("aws.region_lookup", detail="No EC2 region provided, querying instance metadata endpoint")
    region = InstanceMetadataRegionFetcher(timeout=2, num_attempts=2).retrieve_region()
    if not region:
        raise UpstreamError(
            user_message="No region configured and the EC2 instance metadata endpoint gave none.",
            upstream_service="ec2-metadata",
        )
    return region


def create_client(config: DiscoveryConfig) -> Boto3EcsApi:
    """
    Build the ecs/ec2 clients once for a provider run. Blocking (metadata lookup).

    Raises ConfigurationError when only one half of the static key pair is set.
    """
    has_key = bool(config.access_key_id)
    has_secret = bool(config.secret_access_key.get_secret_value())
    if has_key != has_secret:
        missing = "ECS_SECRET_ACCESS_KEY" if has_key else "ECS_ACCESS_KEY_ID"
        raise ConfigurationError(
            user_message=f"Static AWS credentials are incomplete: {missing} is not set.",
            missing=missing,
        )

    region = config.region or _region_from_metadata()

    session_kwargs: dict[str, Any] = {"region_name": region}
    if config.has_static_credentials:
        session_kwargs["aws_access_key_id"] = config.access_key_id
        session_kwargs["aws_secret_access_key"] = config.secret_access_key.get_secret_value()
    session = boto3.Session(**session_kwargs)

    boto_config = BotoConfig(
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
        retries={"mode": "standard", "total_max_attempts": 1},
    )

    logger.info("aws.client_created", region=region, static_credentials=config.has_static_credentials)
    return Boto3EcsApi(
        session.client("ecs", config=boto_config),
        session.client("ec2", config=boto_config),
    )


__all__ = ["Boto3EcsApi", "create_client"]

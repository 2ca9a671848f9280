"""
ecs_discovery test configuration.

All tests run against the in-memory EcsApi or botocore stubs; no AWS account
or network access required.
"""
from __future__ import annotations

import os

import pytest

# ── Force test settings ────────────────────────────────────────────────────
# These must be set before any ecs_discovery modules are imported.

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("ECS_LOG_LEVEL", "DEBUG")
os.environ.setdefault("ECS_LOG_FORMAT", "console")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_EC2_METADATA_DISABLED", "true")


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(scope="session", autouse=True)
def debug_logging():
    """Route every level through structlog so debug diagnostics can be captured."""
    from ecs_discovery.tier0_core.config import DiscoveryConfig
    from ecs_discovery.tier0_core.logging import configure_logging

    configure_logging(DiscoveryConfig(_env_file=None, log_level="DEBUG", log_format="console"))


@pytest.fixture(autouse=True)
def reset_config_cache():
    """Each test reads the environment afresh."""
    from ecs_discovery.tier0_core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


@pytest.fixture
def memory_api():
    """An empty InMemoryEcsApi paging two items at a time."""
    from ecs_discovery.tier2_discovery.memory import InMemoryEcsApi
    return InMemoryEcsApi(page_size=2)


@pytest.fixture
def two_task_cluster(memory_api):
    """
    One cluster "prod", two running tasks with one container each:
      - task A: web container with a host port, enabled by label
      - task B: worker container without bindings or port label
    Both run on the same healthy host.
    """
    memory_api.add_host("ci-1", "i-0001", private_ip="10.0.0.5")
    memory_api.add_task_definition("td-web", [
        {"name": "web", "dockerLabels": {"traefik.enable": "true"}},
    ])
    memory_api.add_task_definition("td-worker", [
        {"name": "worker", "dockerLabels": {}},
    ])
    memory_api.add_task(
        "prod", "aaaaaaaaaaaa111111111111",
        group="service:web", task_definition="td-web", container_instance="ci-1",
        containers=[{"name": "web", "networkBindings": [{"hostPort": 32768, "containerPort": 80}]}],
    )
    memory_api.add_task(
        "prod", "bbbbbbbbbbbb222222222222",
        group="service:worker", task_definition="td-worker", container_instance="ci-1",
        containers=[{"name": "worker", "networkBindings": []}],
    )
    return memory_api

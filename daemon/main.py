"""ECS discovery daemon: minimal entry point.

Runs the ECS provider and drains its configuration queue:
  provider  : polls ECS/EC2 every ECS_REFRESH_SECONDS
  consumer  : logs each received snapshot (stand-in for the router)

SIGINT / SIGTERM stop the provider; an in-flight poll is abandoned.
"""

from __future__ import annotations

import asyncio
import signal

from ecs_discovery.tier0_core.config import get_config
from ecs_discovery.tier0_core.logging import configure_logging, get_logger
from ecs_discovery.tier0_core.metrics import start_metrics_server
from ecs_discovery.tier3_provider.provider import ConfigMessage, EcsProvider

log = get_logger("daemon")


async def _consume(queue: asyncio.Queue[ConfigMessage]) -> None:
    """Log every snapshot the provider delivers."""
    while True:
        message = await queue.get()
        configuration = message.configuration
        log.info(
            "config.received",
            provider=message.provider_name,
            backends=sorted(configuration.get("backends", {})),
            frontends=len(configuration.get("frontends", {})),
        )
        queue.task_done()


async def main() -> None:
    config = get_config()
    configure_logging(config)

    if config.metrics_port:
        start_metrics_server(config.metrics_port)
        log.info("metrics.listening", port=config.metrics_port)

    queue: asyncio.Queue[ConfigMessage] = asyncio.Queue()
    provider = EcsProvider(config, queue)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, provider.stop)

    log.info(
        "daemon.starting",
        clusters=list(config.cluster_selection().names),
        auto_discover=config.auto_discover_clusters,
        refresh_seconds=config.refresh_seconds,
        watch=config.watch,
    )

    consumer = asyncio.create_task(_consume(queue))
    try:
        await provider.provide()
        await queue.join()
    finally:
        consumer.cancel()

    log.info("daemon.shutdown_complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

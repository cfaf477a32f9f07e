"""Queue system detection.

Probes each adapter's CLI tool in a fixed priority order and binds the
session to the first one that responds.

Example:
    adapters = build_adapters(config)
    system = await detect_queue_system(Path("/work/orders"), adapters)
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from pathlib import Path

from polyqueue_lsp.adapters import (
    Adapter,
    CommandRunner,
    NatsAdapter,
    RabbitMQAdapter,
    RedisStreamsAdapter,
)
from polyqueue_lsp.constants import DETECTION_ORDER
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import PolyQueueConfig, QueueSystem

logger = get_logger(__name__)


def build_adapters(
    config: PolyQueueConfig,
    runner: CommandRunner | None = None,
) -> dict[QueueSystem, Adapter]:
    """Create one adapter per queue system, in detection order.

    Args:
        config: Loaded configuration with connection targets.
        runner: Shared subprocess port. Created from the config timeout if omitted.

    Returns:
        Mapping of queue system tag to adapter.
    """
    runner = runner or CommandRunner(timeout_seconds=config.command_timeout_seconds)
    return {
        "redis_streams": RedisStreamsAdapter(config.redis, runner),
        "rabbitmq": RabbitMQAdapter(config.rabbitmq, runner),
        "nats": NatsAdapter(config.nats, runner),
    }


async def detect_queue_system(
    project_root: Path | None,
    adapters: Mapping[QueueSystem, Adapter],
) -> QueueSystem:
    """Pick the active queue system for a project.

    Args:
        project_root: Project directory, or None when the editor opened no folder.
        adapters: Adapters keyed by queue system.

    Returns:
        The first system (in priority order) whose tool responds, else "none".
    """
    if project_root is None:
        logger.info("No project root; skipping queue detection")
        return "none"

    start_time = time.monotonic()

    for system in DETECTION_ORDER:
        adapter = adapters.get(system)  # type: ignore[call-overload]
        if adapter is None:
            continue

        try:
            detected = await adapter.detect()
        except Exception as e:
            # detect() must not raise; treat a misbehaving adapter as absent
            logger.warning("Detection probe raised", extra={"system": system, "error": str(e)})
            detected = False

        if detected:
            logger.info(
                "Queue system detected",
                extra={
                    "system": system,
                    "project_root": str(project_root),
                    "duration_ms": int((time.monotonic() - start_time) * 1000),
                },
            )
            return system  # type: ignore[return-value]

    logger.info("No queue system detected", extra={"project_root": str(project_root)})
    return "none"

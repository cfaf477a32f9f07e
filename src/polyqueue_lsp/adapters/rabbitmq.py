"""RabbitMQ adapter.

Uses rabbitmqctl for queue queries and management, and rabbitmqadmin
(the management API client) for publishing and reading messages.
rabbitmqctl is always asked for JSON output; rabbitmqadmin for raw JSON.

Example:
    adapter = RabbitMQAdapter(RabbitMQConfig(vhost="/"))
    await adapter.publish(
        "orders",
        {"sku": "A-1"},
        PublishOptions(exchange="shop", priority="high", persistent=True),
    )
"""

from __future__ import annotations

import json
from typing import Any, ClassVar

from polyqueue_lsp.adapters.base import Adapter, serialize_message, synthesize_message_id
from polyqueue_lsp.adapters.runner import CommandRunner
from polyqueue_lsp.constants import (
    RABBITMQ_PERSISTENT_DELIVERY_MODE,
    RABBITMQ_PRIORITIES,
    SYSTEM_RABBITMQ,
)
from polyqueue_lsp.exceptions import AdapterError, QueueNotFoundError
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import (
    AdapterMetadata,
    PublishOptions,
    QueueInfo,
    RabbitMQConfig,
    SubscribeOptions,
)

logger = get_logger(__name__)

METADATA = AdapterMetadata(
    name="RabbitMQ",
    description="RabbitMQ message broker using rabbitmqctl/rabbitmqadmin",
    protocol="AMQP 0-9-1",
    cli_tool="rabbitmqctl/rabbitmqadmin",
    features=["publish", "subscribe", "exchanges", "routing", "persistence", "priority"],
)


class RabbitMQAdapter(Adapter):
    """Broker adapter backed by rabbitmqctl and rabbitmqadmin."""

    name: ClassVar[str] = SYSTEM_RABBITMQ
    cli_tool: ClassVar[str] = "rabbitmqctl/rabbitmqadmin"

    def __init__(
        self,
        config: RabbitMQConfig | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        super().__init__(runner)
        self._config = config or RabbitMQConfig()

    # =========================================================================
    # CONTRACT
    # =========================================================================

    async def detect(self) -> bool:
        result = await self._probe(self._config.ctl, ["status"])
        return result is not None and result.ok

    async def publish(
        self,
        queue_name: str,
        message: dict[str, Any] | str,
        options: PublishOptions | None = None,
    ) -> str:
        options = options or PublishOptions()

        args = [
            "publish",
            f"exchange={options.exchange}",
            f"routing_key={options.routing_key or queue_name}",
            f"payload={serialize_message(message)}",
        ]

        properties: dict[str, Any] = {}
        if options.priority != "normal":
            properties["priority"] = RABBITMQ_PRIORITIES[options.priority]
        if options.persistent:
            properties["delivery_mode"] = RABBITMQ_PERSISTENT_DELIVERY_MODE
        if options.headers:
            properties["headers"] = dict(options.headers)
        if properties:
            args.append(f"properties={json.dumps(properties, separators=(',', ':'))}")

        output = await self._admin(args)
        if "not routed" in output.lower():
            logger.warning(
                "Message published but not routed",
                extra={"queue": queue_name, "exchange": options.exchange},
            )

        # rabbitmqadmin does not report message ids
        return synthesize_message_id()

    async def subscribe(
        self,
        queue_name: str,
        options: SubscribeOptions | None = None,
    ) -> list[str]:
        options = options or SubscribeOptions()
        ackmode = "ack_requeue_true" if options.requeue else "ack_requeue_false"

        output = await self._admin(
            [
                "-f",
                "raw_json",
                "get",
                f"queue={queue_name}",
                f"count={options.count}",
                f"ackmode={ackmode}",
                "encoding=auto",
            ]
        )
        if not output.strip():
            return []

        data = self._parse_json(output, "messages")
        if not isinstance(data, list):
            raise self._parse_failure("messages", output)

        payloads: list[str] = []
        for item in data:
            if not isinstance(item, dict) or "payload" not in item:
                raise self._parse_failure("messages", output)
            payload = item["payload"]
            payloads.append(payload if isinstance(payload, str) else serialize_message(payload))
        return payloads[: options.count]

    async def list_queues(self) -> list[str]:
        rows = await self._ctl_rows(["list_queues", "name"], "queue list")
        return [str(row["name"]) for row in rows]

    async def queue_status(self, queue_name: str) -> QueueInfo:
        rows = await self._ctl_rows(
            ["list_queues", "name", "messages", "consumers"],
            "queue status",
        )

        row = next((r for r in rows if r.get("name") == queue_name), None)
        if row is None:
            raise QueueNotFoundError(
                f"Queue '{queue_name}' not found",
                adapter_name=self.name,
                details={"vhost": self._config.vhost},
            )

        try:
            length = int(row.get("messages") or 0)
            consumer_count = int(row.get("consumers") or 0)
        except (TypeError, ValueError) as e:
            raise self._parse_failure("queue status", json.dumps(row)) from e

        return QueueInfo(
            name=queue_name,
            length=max(length, 0),
            consumer_groups=await self._consumer_tags(queue_name, consumer_count),
            last_id=None,
        )

    async def purge_queue(self, queue_name: str) -> None:
        await self._ctl(["purge_queue", queue_name])

    async def version(self) -> str:
        output = (await self._ctl(["version"])).strip()
        if not output:
            raise self._parse_failure("version")
        return output.splitlines()[-1].strip()

    def metadata(self) -> AdapterMetadata:
        return METADATA

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _ctl(self, args: list[str]) -> str:
        return await self._command(self._config.ctl, ["-q", "-p", self._config.vhost, *args])

    async def _admin(self, args: list[str]) -> str:
        connection = [
            "-H",
            self._config.host,
            "-P",
            str(self._config.management_port),
            "-V",
            self._config.vhost,
        ]
        return await self._command(self._config.admin, [*connection, *args])

    async def _ctl_rows(self, args: list[str], what: str) -> list[dict[str, Any]]:
        """Run a rabbitmqctl listing with JSON output and return its rows."""
        output = await self._ctl([*args, "--formatter", "json"])
        if not output.strip():
            return []

        data = self._parse_json(output, what)
        if not isinstance(data, list) or not all(
            isinstance(row, dict) and "name" in row for row in data
        ):
            raise self._parse_failure(what, output)
        return data

    async def _consumer_tags(self, queue_name: str, consumer_count: int) -> list[str]:
        """Name the consumers attached to a queue.

        RabbitMQ has no named consumer groups; each consumer's tag is the
        closest equivalent. If consumers cannot be listed, fall back to a
        count label.
        """
        fallback = [f"consumers: {consumer_count}"] if consumer_count else []

        try:
            output = await self._ctl(
                ["list_consumers", "queue_name", "consumer_tag", "--formatter", "json"]
            )
            data = self._parse_json(output, "consumers") if output.strip() else []
        except AdapterError as e:
            logger.debug(
                "Consumer listing unusable",
                extra={"queue": queue_name, "error": e.message},
            )
            return fallback

        if not isinstance(data, list):
            return fallback

        tags = [
            str(row["consumer_tag"])
            for row in data
            if isinstance(row, dict)
            and row.get("queue_name") == queue_name
            and row.get("consumer_tag")
        ]
        return tags or fallback

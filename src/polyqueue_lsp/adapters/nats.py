"""NATS adapter with JetStream support.

Uses the nats CLI. Core NATS subjects are fire-and-forget and keep no
state; JetStream streams persist messages and can be listed, inspected
and purged. Management operations therefore address JetStream streams,
while publish and subscribe work on plain subjects unless asked to
persist.

Example:
    adapter = NatsAdapter(NatsConfig(server="nats://localhost:4222"))
    await adapter.publish("orders.created", {"id": 7}, PublishOptions(persistent=True))
    info = await adapter.queue_status("ORDERS")
"""

from __future__ import annotations

import re
from typing import Any, ClassVar

from polyqueue_lsp.adapters.base import Adapter, serialize_message, synthesize_message_id
from polyqueue_lsp.adapters.runner import CommandRunner
from polyqueue_lsp.constants import NATS_DEFAULT_CONSUMER, SYSTEM_NATS
from polyqueue_lsp.exceptions import AdapterError, QueueNotFoundError, ToolUnavailableError
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import (
    AdapterMetadata,
    NatsConfig,
    PublishOptions,
    QueueInfo,
    SubscribeOptions,
)

logger = get_logger(__name__)

SEQUENCE_PATTERN = re.compile(r"sequence:?\s*(\d+)", re.IGNORECASE)
VERSION_PREFIX = "nats version "
HEADER_LINE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*: ")

METADATA = AdapterMetadata(
    name="NATS",
    description="NATS messaging system with JetStream support",
    protocol="NATS Protocol",
    cli_tool="nats",
    features=["publish", "subscribe", "jetstream", "persistence", "replay", "at_least_once"],
)


class NatsAdapter(Adapter):
    """PubSub adapter backed by the nats CLI."""

    name: ClassVar[str] = SYSTEM_NATS
    cli_tool: ClassVar[str] = "nats"

    def __init__(
        self,
        config: NatsConfig | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        super().__init__(runner)
        self._config = config or NatsConfig()

    # =========================================================================
    # CONTRACT
    # =========================================================================

    async def detect(self) -> bool:
        result = await self._probe(self._config.cli, ["--version"])
        return result is not None and result.ok and bool(result.output)

    async def publish(
        self,
        queue_name: str,
        message: dict[str, Any] | str,
        options: PublishOptions | None = None,
    ) -> str:
        options = options or PublishOptions()

        args = ["pub", queue_name, serialize_message(message)]
        if options.persistent:
            args.append("--jetstream")
        for key, value in options.headers.items():
            args.extend(["--header", f"{key}:{value}"])

        output = await self._nats(args)

        match = SEQUENCE_PATTERN.search(output)
        if match:
            return f"seq_{match.group(1)}"
        return synthesize_message_id()

    async def subscribe(
        self,
        queue_name: str,
        options: SubscribeOptions | None = None,
    ) -> list[str]:
        options = options or SubscribeOptions()
        count = str(options.count)

        if options.durable:
            consumer = options.consumer_name or NATS_DEFAULT_CONSUMER
            output = await self._nats(
                ["consumer", "next", queue_name, consumer, "--count", count, "--raw"]
            )
            bodies = [line for line in output.splitlines() if line.strip()]
            return bodies[: options.count]

        args = ["sub", queue_name, "--count", count]
        if options.persistent:
            args.extend(["--stream", queue_name])
            if options.start_id and options.start_id.isdigit():
                args.extend(["--start-sequence", options.start_id])

        output = await self._nats(args)
        return _parse_received(output)[: options.count]

    async def list_queues(self) -> list[str]:
        try:
            output = await self._nats(["stream", "ls", "--json"])
        except ToolUnavailableError as e:
            if _jetstream_disabled(e.message):
                return []
            raise

        if not output.strip() or "no streams" in output.lower():
            return []

        data = self._parse_json(output, "stream list")
        if isinstance(data, dict):
            data = data.get("streams") or []
        if not isinstance(data, list):
            raise self._parse_failure("stream list", output)

        names = [_entry_name(item) for item in data]
        if any(name is None for name in names):
            raise self._parse_failure("stream list", output)
        return [name for name in names if name is not None]

    async def queue_status(self, queue_name: str) -> QueueInfo:
        try:
            output = await self._nats(["stream", "info", queue_name, "--json"])
        except ToolUnavailableError as e:
            lowered = e.message.lower()
            if "stream not found" in lowered:
                raise QueueNotFoundError(
                    f"Stream '{queue_name}' not found",
                    adapter_name=self.name,
                ) from e
            if _jetstream_disabled(e.message):
                # Plain subjects keep no state: absent and empty look the same
                return QueueInfo(name=queue_name, length=0)
            raise

        info = self._parse_json(output, "stream info")
        state = info.get("state") if isinstance(info, dict) else None
        if not isinstance(state, dict):
            raise self._parse_failure("stream info", output)

        try:
            length = int(state.get("messages") or 0)
        except (TypeError, ValueError) as e:
            raise self._parse_failure("stream info", output) from e

        last_seq = state.get("last_seq")
        return QueueInfo(
            name=queue_name,
            length=max(length, 0),
            consumer_groups=await self._consumer_names(queue_name),
            last_id=str(last_seq) if last_seq is not None else None,
        )

    async def purge_queue(self, queue_name: str) -> None:
        await self._nats(["stream", "purge", queue_name, "--force"])

    async def version(self) -> str:
        output = await self._command(self._config.cli, ["--version"])
        version = output.strip().removeprefix(VERSION_PREFIX)
        if not version:
            raise self._parse_failure("version")
        return version

    def metadata(self) -> AdapterMetadata:
        return METADATA

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _nats(self, args: list[str]) -> str:
        return await self._command(self._config.cli, ["--server", self._config.server, *args])

    async def _consumer_names(self, stream: str) -> list[str]:
        try:
            output = await self._nats(["consumer", "ls", stream, "--json"])
            data = self._parse_json(output, "consumer list") if output.strip() else []
        except AdapterError as e:
            logger.debug("Consumer listing unusable", extra={"stream": stream, "error": e.message})
            return []

        if isinstance(data, dict):
            data = data.get("consumers") or []
        if not isinstance(data, list):
            return []
        return [name for name in (_entry_name(item) for item in data) if name]


def _jetstream_disabled(message: str) -> bool:
    return "jetstream not enabled" in message.lower()


def _entry_name(item: Any) -> str | None:
    """Name of a stream/consumer entry: a plain string or an info object."""
    if isinstance(item, str):
        return item
    if not isinstance(item, dict):
        return None
    if item.get("name"):
        return str(item["name"])
    config = item.get("config")
    if isinstance(config, dict):
        name = config.get("name") or config.get("durable_name")
        return str(name) if name else None
    return None


def _parse_received(output: str) -> list[str]:
    """Extract message bodies from `nats sub` output.

    Each message starts with a `[#N] Received on ...` line. Older CLI
    versions print the body inline after `': `; newer ones print it on the
    following lines. Messages with headers print a `Key: value` block and
    a blank line before the body.
    """
    bodies: list[str] = []
    current: list[str] | None = None

    for line in output.splitlines():
        if line.startswith("[#"):
            if current is not None:
                bodies.append(_message_body(current))
            _, sep, inline = line.partition("': ")
            if sep:
                bodies.append(inline)
                current = None
            else:
                current = []
        elif current is not None:
            current.append(line)

    if current is not None:
        bodies.append(_message_body(current))

    return bodies


def _message_body(lines: list[str]) -> str:
    """Body of one received message, skipping a leading header block."""
    blocks: list[list[str]] = [[]]
    for line in lines:
        if line.strip():
            blocks[-1].append(line)
        elif blocks[-1]:
            blocks.append([])
    blocks = [block for block in blocks if block]

    if not blocks:
        return ""
    if len(blocks) > 1 and all(HEADER_LINE.match(line) for line in blocks[0]):
        return "\n".join(blocks[1])
    return "\n".join(blocks[0])

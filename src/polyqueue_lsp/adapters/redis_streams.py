"""Redis Streams adapter.

Uses redis-cli for every operation. When redis-cli writes to a pipe it
prints replies in raw form: one value per line, nested arrays flattened,
nil as an empty line. All parsing here works on that layout.

Example:
    adapter = RedisStreamsAdapter(RedisConfig(host="localhost", port=6379))
    entry_id = await adapter.publish("orders", {"sku": "A-1", "qty": 2})
    bodies = await adapter.subscribe("orders", SubscribeOptions(count=5))
"""

from __future__ import annotations

import json
import re
from typing import Any, ClassVar

from polyqueue_lsp.adapters.base import Adapter
from polyqueue_lsp.adapters.runner import CommandRunner
from polyqueue_lsp.constants import (
    REDIS_DEFAULT_CONSUMER,
    REDIS_DEFAULT_GROUP,
    REDIS_SCAN_BATCH,
    SYSTEM_REDIS_STREAMS,
)
from polyqueue_lsp.exceptions import QueueNotFoundError, ToolUnavailableError
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import (
    AdapterMetadata,
    PublishOptions,
    QueueInfo,
    RedisConfig,
    SubscribeOptions,
)

logger = get_logger(__name__)

STREAM_ID_PATTERN = re.compile(r"^\d+-\d+$")
VERSION_PATTERN = re.compile(r"^redis_version:(\S+)", re.MULTILINE)
ERROR_REPLY_PATTERN = re.compile(
    r"^(\(error\) )?(ERR|WRONGTYPE|NOGROUP|BUSYGROUP|NOAUTH|NOPERM|READONLY|LOADING|MISCONF)\b"
    r"|^Could not connect to Redis"
)

# Safety net against a server that never returns the scan cursor to 0
MAX_SCAN_ROUNDS = 10_000

METADATA = AdapterMetadata(
    name="Redis Streams",
    description="Redis Streams message queue using redis-cli",
    protocol="RESP",
    cli_tool="redis-cli",
    features=["publish", "subscribe", "consumer_groups", "persistence", "replay"],
)


class RedisStreamsAdapter(Adapter):
    """Stream-store adapter backed by redis-cli.

    Streams are the queues: XADD appends, XREADGROUP reads through a
    consumer group, DEL purges.
    """

    name: ClassVar[str] = SYSTEM_REDIS_STREAMS
    cli_tool: ClassVar[str] = "redis-cli"

    def __init__(
        self,
        config: RedisConfig | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        super().__init__(runner)
        self._config = config or RedisConfig()

    # =========================================================================
    # CONTRACT
    # =========================================================================

    async def detect(self) -> bool:
        result = await self._probe(self._config.cli, ["--version"])
        return result is not None and result.ok and "redis-cli" in result.output

    async def publish(
        self,
        queue_name: str,
        message: dict[str, Any] | str,
        options: PublishOptions | None = None,
    ) -> str:
        options = options or PublishOptions()

        args = ["XADD", queue_name]
        if options.max_length is not None:
            args.extend(["MAXLEN", "~", str(options.max_length)])
        args.append("*")
        args.extend(_message_fields(message))

        output = await self._redis(args)
        entry_id = output.strip()
        if not STREAM_ID_PATTERN.match(entry_id):
            raise self._parse_failure("message id", output)
        return entry_id

    async def subscribe(
        self,
        queue_name: str,
        options: SubscribeOptions | None = None,
    ) -> list[str]:
        options = options or SubscribeOptions()
        group = options.consumer_group or REDIS_DEFAULT_GROUP
        consumer = options.consumer_name or REDIS_DEFAULT_CONSUMER

        await self._ensure_group(queue_name, group)

        args = ["XREADGROUP", "GROUP", group, consumer, "COUNT", str(options.count)]
        if options.block_ms is not None:
            args.extend(["BLOCK", str(options.block_ms)])
        args.extend(["STREAMS", queue_name, options.start_id or ">"])

        output = await self._redis(args)
        return self._parse_entries(output)[: options.count]

    async def list_queues(self) -> list[str]:
        cursor = "0"
        keys: list[str] = []

        for _ in range(MAX_SCAN_ROUNDS):
            output = await self._redis(
                ["SCAN", cursor, "COUNT", str(REDIS_SCAN_BATCH), "TYPE", "stream"]
            )
            lines = output.splitlines()
            if not lines or not lines[0].strip().isdigit():
                raise self._parse_failure("scan cursor", output)

            cursor = lines[0].strip()
            keys.extend(line for line in lines[1:] if line and line not in keys)
            if cursor == "0":
                break

        return keys

    async def queue_status(self, queue_name: str) -> QueueInfo:
        key_type = (await self._redis(["TYPE", queue_name])).strip()
        if key_type == "none":
            raise QueueNotFoundError(
                f"Stream '{queue_name}' not found",
                adapter_name=self.name,
            )
        if key_type != "stream":
            raise QueueNotFoundError(
                f"Key '{queue_name}' is a {key_type}, not a stream",
                adapter_name=self.name,
                details={"type": key_type},
            )

        length_output = await self._redis(["XLEN", queue_name])
        try:
            length = int(length_output.strip())
        except ValueError as e:
            raise self._parse_failure("stream length", length_output) from e

        return QueueInfo(
            name=queue_name,
            length=length,
            consumer_groups=await self._consumer_groups(queue_name),
            last_id=await self._last_id(queue_name),
        )

    async def purge_queue(self, queue_name: str) -> None:
        # DEL replies 0 for a missing key, which is still a successful purge
        await self._redis(["DEL", queue_name])

    async def version(self) -> str:
        output = await self._redis(["INFO", "server"])
        match = VERSION_PATTERN.search(output)
        if match is None:
            raise self._parse_failure("version", output)
        return match.group(1)

    def metadata(self) -> AdapterMetadata:
        return METADATA

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _is_error_output(self, output: str) -> bool:
        return bool(ERROR_REPLY_PATTERN.match(output))

    async def _redis(self, args: list[str]) -> str:
        connection = ["-h", self._config.host, "-p", str(self._config.port)]
        return await self._command(self._config.cli, [*connection, *args])

    async def _ensure_group(self, stream: str, group: str) -> None:
        """Create the consumer group (and the stream) unless it exists."""
        try:
            await self._redis(["XGROUP", "CREATE", stream, group, "0", "MKSTREAM"])
        except ToolUnavailableError as e:
            if "BUSYGROUP" not in e.message:
                raise

    async def _consumer_groups(self, stream: str) -> list[str]:
        try:
            output = await self._redis(["XINFO", "GROUPS", stream])
        except ToolUnavailableError:
            return []

        # Flattened key/value pairs for each group: name, <name>, consumers, <n>, ...
        lines = output.splitlines()
        return [
            lines[i + 1]
            for i in range(0, len(lines) - 1, 2)
            if lines[i] == "name" and lines[i + 1]
        ]

    async def _last_id(self, stream: str) -> str | None:
        try:
            output = await self._redis(["XREVRANGE", stream, "+", "-", "COUNT", "1"])
        except ToolUnavailableError:
            return None

        first = output.splitlines()[0].strip() if output else ""
        return first if STREAM_ID_PATTERN.match(first) else None

    def _parse_entries(self, output: str) -> list[str]:
        """Parse flattened XREADGROUP output into message bodies.

        Layout: stream name, then for each entry its id followed by
        field/value pairs. An empty value at the very end leaves no line.
        """
        lines = output.splitlines()
        if not lines or not any(line.strip() for line in lines):
            return []

        bodies: list[str] = []
        i = 1  # skip the stream name
        while i < len(lines):
            if not STREAM_ID_PATTERN.match(lines[i]):
                raise self._parse_failure("stream entries", output)
            i += 1

            fields: dict[str, str] = {}
            while i < len(lines) and not STREAM_ID_PATTERN.match(lines[i]):
                fields[lines[i]] = lines[i + 1] if i + 1 < len(lines) else ""
                i += 2

            bodies.append(_entry_body(fields))

        return bodies


def _message_fields(message: dict[str, Any] | str) -> list[str]:
    """Flatten a message into XADD field/value arguments."""
    if isinstance(message, str):
        record: dict[str, Any] = {"data": message}
    else:
        record = message or {"data": "{}"}

    fields: list[str] = []
    for key, value in record.items():
        if isinstance(value, str):
            text = value
        elif isinstance(value, (dict, list)):
            text = json.dumps(value, separators=(",", ":"), default=str)
        else:
            text = str(value)
        fields.extend([str(key), text])
    return fields


def _entry_body(fields: dict[str, str]) -> str:
    if list(fields) == ["data"]:
        return fields["data"]
    return json.dumps(fields, separators=(",", ":"))

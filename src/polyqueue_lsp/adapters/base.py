"""Base adapter interface for queue systems.

This module defines the abstract base class that all queue system adapters
must implement. An adapter wraps one external CLI tool and maps its
text-based output onto the shared result shapes (QueueInfo, message ids,
message bodies, queue names).

Example:
    class MyAdapter(Adapter):
        name = "my_queue"
        cli_tool = "myq"

        async def detect(self) -> bool:
            result = await self._probe(self.cli_tool, ["--version"])
            return result is not None and result.ok

        async def list_queues(self) -> list[str]:
            output = await self._command(self.cli_tool, ["ls"])
            return output.splitlines()

        ...

Implementation Requirements:
    - All I/O goes through the CommandRunner
    - Only AdapterError subclasses may escape a method
    - Unexpected output raises ParseFailureError("failed to parse <what>")
    - detect() and metadata() never raise
"""

from __future__ import annotations

import itertools
import json
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar

from polyqueue_lsp.adapters.runner import CommandRunner
from polyqueue_lsp.exceptions import AdapterError, ParseFailureError, ToolUnavailableError
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import (
    AdapterMetadata,
    CommandResult,
    PublishOptions,
    QueueInfo,
    QueueSystem,
    SubscribeOptions,
)

logger = get_logger(__name__)

_message_sequence = itertools.count(1)


def synthesize_message_id() -> str:
    """Return a unique id for tools that do not report one."""
    return f"msg_{time.time_ns() // 1_000_000}_{next(_message_sequence)}"


def serialize_message(message: dict[str, Any] | str) -> str:
    """Serialize a message body for tools that take a single payload."""
    if isinstance(message, str):
        return message
    return json.dumps(message, separators=(",", ":"), default=str)


class Adapter(ABC):
    """Abstract base class for all queue system adapters.

    Class Attributes:
        name: The queue system tag this adapter serves.
        cli_tool: Display name of the backing CLI tool(s).

    Subclasses must implement:
        - detect: Whether the CLI tool is installed and responsive
        - publish / subscribe: Send and read messages
        - list_queues / queue_status / purge_queue: Queue management
        - version: Version of the backing system
        - metadata: Static adapter description
    """

    name: ClassVar[QueueSystem]
    cli_tool: ClassVar[str]

    def __init__(self, runner: CommandRunner | None = None) -> None:
        """Initialize the adapter.

        Args:
            runner: Subprocess port. A default CommandRunner is created if omitted.
        """
        self._runner = runner or CommandRunner()

    # =========================================================================
    # CONTRACT
    # =========================================================================

    @abstractmethod
    async def detect(self) -> bool:
        """Check whether the backing CLI tool is installed and responsive.

        Returns:
            True if a version/status probe succeeded. Any failure yields False.
        """
        ...

    @abstractmethod
    async def publish(
        self,
        queue_name: str,
        message: dict[str, Any] | str,
        options: PublishOptions | None = None,
    ) -> str:
        """Publish a message.

        Args:
            queue_name: Queue, stream or subject name.
            message: A structured record or raw text.
            options: Publish options; adapters honour their own subset.

        Returns:
            The message id reported by the tool, or a synthesized one.
        """
        ...

    @abstractmethod
    async def subscribe(
        self,
        queue_name: str,
        options: SubscribeOptions | None = None,
    ) -> list[str]:
        """Read up to `options.count` messages.

        Returns:
            Message bodies in delivery order.
        """
        ...

    @abstractmethod
    async def list_queues(self) -> list[str]:
        """List queue or stream names."""
        ...

    @abstractmethod
    async def queue_status(self, queue_name: str) -> QueueInfo:
        """Get status for one queue.

        Raises:
            QueueNotFoundError: If the system can tell the queue does not exist.
        """
        ...

    @abstractmethod
    async def purge_queue(self, queue_name: str) -> None:
        """Remove all messages from a queue. Purging an empty queue succeeds."""
        ...

    @abstractmethod
    async def version(self) -> str:
        """Get the backing system or tool version."""
        ...

    @abstractmethod
    def metadata(self) -> AdapterMetadata:
        """Describe the adapter. Pure, performs no I/O."""
        ...

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _is_error_output(self, output: str) -> bool:
        """Whether successful-exit output is actually an error reply."""
        return False

    async def _command(self, tool: str, args: Sequence[str]) -> str:
        """Run a tool and return its output, raising on any failure.

        Raises:
            ToolUnavailableError: Spawn failure, timeout, non-zero exit or
                an error reply.
        """
        try:
            result = await self._runner.run(tool, args)
        except ToolUnavailableError as e:
            # Re-label runner errors with this adapter, keeping the subclass
            raise type(e)(e.message, adapter_name=self.name, details=e.details) from e

        if not result.ok or self._is_error_output(result.output):
            message = result.output or f"{tool} exited with status {result.exit_code}"
            raise ToolUnavailableError(
                message,
                adapter_name=self.name,
                details={"tool": tool, "exit_code": result.exit_code},
            )

        return result.output

    async def _probe(self, tool: str, args: Sequence[str]) -> CommandResult | None:
        """Run a detection probe. Returns None when the tool cannot run."""
        try:
            return await self._runner.run(tool, args)
        except AdapterError as e:
            logger.debug("Probe failed", extra={"adapter": self.name, "error": e.message})
            return None

    def _parse_failure(self, what: str, output: str = "") -> ParseFailureError:
        details = {"output": output[:200]} if output else None
        return ParseFailureError(f"failed to parse {what}", adapter_name=self.name, details=details)

    def _parse_json(self, output: str, what: str) -> Any:
        """Decode JSON output, skipping any banner text printed before it."""
        starts = [i for i in (output.find("["), output.find("{")) if i >= 0]
        if not starts:
            raise self._parse_failure(what, output)

        try:
            return json.loads(output[min(starts) :])
        except json.JSONDecodeError as e:
            raise self._parse_failure(what, output) from e

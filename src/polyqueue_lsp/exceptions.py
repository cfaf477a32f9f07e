"""Custom exceptions for PolyQueue LSP.

This module defines a hierarchy of exceptions used throughout PolyQueue LSP.
All exceptions inherit from PolyQueueError, making it easy to catch
all PolyQueue-related errors in one place.

Exception Hierarchy:
    PolyQueueError (base)
    ├── ConfigError - Configuration loading/validation failures
    └── AdapterError (base for adapter failures)
        ├── ToolUnavailableError - CLI spawn failure or non-zero exit
        │   └── CommandTimeoutError - Outer deadline expired
        ├── ParseFailureError - Tool succeeded but output had the wrong shape
        └── QueueNotFoundError - Addressed queue/stream does not exist

Configuration findings are never raised: they are reported as Diagnostic
values by the diagnostics engine.
"""

from typing import Any


class PolyQueueError(Exception):
    """Base exception for all PolyQueue LSP errors.

    Args:
        message: Human-readable error message.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(PolyQueueError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Invalid YAML syntax in .polyqueue.yaml
        - Values that fail schema validation (e.g., a non-numeric port)
    """


class AdapterError(PolyQueueError):
    """Base exception for adapter-related errors.

    All adapter-specific exceptions inherit from this class, so callers
    can handle every adapter failure with a single except clause.

    Args:
        message: Human-readable error message.
        adapter_name: Name of the adapter that raised the error.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        adapter_name: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.adapter_name = adapter_name

    def __str__(self) -> str:
        base = f"[{self.adapter_name}] {self.message}"
        if self.details:
            return f"{base} | Details: {self.details}"
        return base


class ToolUnavailableError(AdapterError):
    """Raised when the backing CLI tool cannot be run or exits non-zero.

    The message carries the raw combined stdout/stderr of the tool, or the
    operating system error when the process could not be spawned.

    Examples:
        - redis-cli is not installed
        - rabbitmqctl cannot reach the node
        - nats returns an error reply
    """


class CommandTimeoutError(ToolUnavailableError):
    """Raised when a CLI invocation exceeds its deadline."""


class ParseFailureError(AdapterError):
    """Raised when a tool exits zero but its output has an unexpected shape.

    Examples:
        - XADD output that is not a stream entry id
        - Truncated JSON from rabbitmqctl
    """


class QueueNotFoundError(AdapterError):
    """Raised when the addressed queue or stream does not exist.

    Only raised by adapters whose backing system can tell an absent
    queue apart from an empty one.
    """

"""Pydantic models for PolyQueue LSP.

This module contains all data models used throughout PolyQueue LSP.
All models use Pydantic BaseModel with Field() descriptions for
documentation and validation.

Models are organized by domain:
- Config models (RedisConfig, RabbitMQConfig, NatsConfig, PolyQueueConfig)
- Adapter models (AdapterMetadata, QueueInfo, PublishOptions, SubscribeOptions)
- Document models (DocumentState, CursorContext)
- Editor-facing models (CompletionItem, Position, Range, Diagnostic)
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from polyqueue_lsp.constants import (
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SUBSCRIBE_COUNT,
    DIAGNOSTIC_SOURCE,
    MAX_DIAGNOSTICS,
    NATS_CLI,
    NATS_DEFAULT_SERVER,
    RABBITMQ_ADMIN,
    RABBITMQ_CTL,
    RABBITMQ_DEFAULT_HOST,
    RABBITMQ_DEFAULT_MANAGEMENT_PORT,
    RABBITMQ_DEFAULT_VHOST,
    REDIS_CLI,
    REDIS_DEFAULT_HOST,
    REDIS_DEFAULT_PORT,
)

# The closed set of queue systems a session can be bound to.
QueueSystem = Literal["redis_streams", "rabbitmq", "nats", "none"]

TriggerKind = Literal[
    "stream_append_key",
    "stream_read_options",
    "exchange_type",
    "binding_type",
    "subject",
    "none",
]

Priority = Literal["low", "normal", "high"]

# =============================================================================
# CONFIG MODELS
# =============================================================================


class RedisConfig(BaseModel):
    """Redis Streams adapter configuration."""

    cli: str = Field(default=REDIS_CLI, description="redis-cli executable")
    host: str = Field(default=REDIS_DEFAULT_HOST, description="Redis server host")
    port: int = Field(default=REDIS_DEFAULT_PORT, ge=1, le=65535, description="Redis server port")


class RabbitMQConfig(BaseModel):
    """RabbitMQ adapter configuration."""

    ctl: str = Field(default=RABBITMQ_CTL, description="rabbitmqctl executable")
    admin: str = Field(default=RABBITMQ_ADMIN, description="rabbitmqadmin executable")
    host: str = Field(default=RABBITMQ_DEFAULT_HOST, description="Management API host")
    management_port: int = Field(
        default=RABBITMQ_DEFAULT_MANAGEMENT_PORT,
        ge=1,
        le=65535,
        description="Management API port used by rabbitmqadmin",
    )
    vhost: str = Field(default=RABBITMQ_DEFAULT_VHOST, description="Virtual host")


class NatsConfig(BaseModel):
    """NATS adapter configuration."""

    cli: str = Field(default=NATS_CLI, description="nats executable")
    server: str = Field(default=NATS_DEFAULT_SERVER, description="NATS server URL")


class PolyQueueConfig(BaseModel):
    """Root configuration for PolyQueue LSP."""

    redis: RedisConfig = Field(default_factory=RedisConfig)
    rabbitmq: RabbitMQConfig = Field(default_factory=RabbitMQConfig)
    nats: NatsConfig = Field(default_factory=NatsConfig)
    command_timeout_seconds: float = Field(
        default=DEFAULT_COMMAND_TIMEOUT_SECONDS,
        gt=0,
        description="Deadline for a single CLI invocation",
    )
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        gt=0,
        description="Deadline for an editor command or queue request",
    )
    max_diagnostics: int = Field(
        default=MAX_DIAGNOSTICS,
        ge=1,
        description="Maximum diagnostics published per document",
    )


# =============================================================================
# ADAPTER MODELS
# =============================================================================


class AdapterMetadata(BaseModel):
    """Static description of a queue system adapter."""

    model_config = {"frozen": True}

    name: str = Field(..., description="Display name (e.g., 'Redis Streams')")
    description: str = Field(..., description="One-line description")
    protocol: str = Field(..., description="Wire protocol label (e.g., 'RESP')")
    cli_tool: str = Field(..., description="Underlying CLI tool name")
    features: list[str] = Field(default_factory=list, description="Capability tags")


class QueueInfo(BaseModel):
    """Queue or stream status, produced fresh on every query."""

    name: str = Field(..., description="Queue or stream name")
    length: int = Field(default=0, ge=0, description="Number of messages")
    consumer_groups: list[str] = Field(
        default_factory=list,
        description="Consumer group (or consumer) names, in tool order",
    )
    last_id: str | None = Field(default=None, description="Last message id or sequence")


class PublishOptions(BaseModel):
    """Options for publishing. Each adapter honours its own subset."""

    exchange: str = Field(default="", description="Exchange to publish to (broker)")
    routing_key: str | None = Field(
        default=None,
        description="Routing key (broker); defaults to the queue name",
    )
    priority: Priority = Field(default="normal", description="Message priority class")
    persistent: bool = Field(
        default=False,
        description="Persist the message (broker delivery mode, JetStream publish)",
    )
    headers: dict[str, str] = Field(default_factory=dict, description="Message headers")
    max_length: int | None = Field(
        default=None,
        ge=1,
        description="Approximate stream length cap applied on append (stream store)",
    )


class SubscribeOptions(BaseModel):
    """Options for a bounded read. Each adapter honours its own subset."""

    consumer_group: str | None = Field(default=None, description="Consumer group name")
    consumer_name: str | None = Field(default=None, description="Consumer name")
    count: int = Field(default=DEFAULT_SUBSCRIBE_COUNT, ge=1, description="Maximum messages")
    block_ms: int | None = Field(
        default=None,
        ge=0,
        description="Block for up to this many milliseconds waiting for messages",
    )
    start_id: str | None = Field(default=None, description="Starting position token")
    durable: bool = Field(default=False, description="Use a durable consumer")
    persistent: bool = Field(default=False, description="Read from a persistent stream")
    requeue: bool = Field(default=True, description="Requeue messages after reading (broker)")


class CommandResult(BaseModel):
    """Exit status and combined output of one CLI invocation."""

    exit_code: int = Field(..., description="Process exit code")
    output: str = Field(
        default="",
        description="Combined stdout/stderr without the final line ending",
    )

    @property
    def ok(self) -> bool:
        """Whether the tool exited successfully."""
        return self.exit_code == 0


# =============================================================================
# DOCUMENT MODELS
# =============================================================================


class DocumentState(BaseModel):
    """An open document. Replaced wholesale on every change."""

    model_config = {"frozen": True}

    uri: str = Field(..., description="Document URI")
    text: str = Field(default="", description="Full document text")
    version: int = Field(default=0, description="Editor-assigned version")


class CursorContext(BaseModel):
    """Cursor-local text used to pick completions."""

    line: str = Field(default="", description="Full text of the cursor line")
    before_cursor: str = Field(default="", description="Line text left of the cursor")
    trigger: TriggerKind = Field(default="none", description="Trigger classification")


# =============================================================================
# EDITOR-FACING MODELS
# =============================================================================


class CompletionItem(BaseModel):
    """A completion suggestion in the editor protocol shape."""

    model_config = {"frozen": True, "populate_by_name": True}

    label: str = Field(..., description="Text shown in the completion list")
    kind: int = Field(..., description="Editor protocol CompletionItemKind")
    detail: str = Field(default="", description="Kind name shown beside the label")
    insert_text: str = Field(..., alias="insertText", description="Text inserted on accept")


class Position(BaseModel):
    """Zero-based line/character position."""

    line: int = Field(default=0, ge=0)
    character: int = Field(default=0, ge=0)


class Range(BaseModel):
    """A start/end span within a document."""

    start: Position = Field(default_factory=Position)
    end: Position = Field(default_factory=Position)

    @classmethod
    def whole_line(cls, line: int, text: str) -> Range:
        """Span an entire line of text, measured in UTF-16 code units."""
        return cls(
            start=Position(line=line, character=0),
            end=Position(line=line, character=len(text.encode("utf-16-le")) // 2),
        )


class Diagnostic(BaseModel):
    """A configuration finding for one document."""

    message: str = Field(..., description="Human-readable finding")
    severity: Literal[1, 2] = Field(default=1, description="1 = error, 2 = warning")
    source: str = Field(default=DIAGNOSTIC_SOURCE, description="Producer tag")
    range: Range = Field(default_factory=Range, description="Location in the document")

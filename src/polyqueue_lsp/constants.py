"""Constants and configuration defaults for PolyQueue LSP.

This module contains all magic values, default configurations, and constants
used throughout the application. Import from here instead of hardcoding values.
"""

from typing import Final

# =============================================================================
# VERSION
# =============================================================================
VERSION: Final[str] = "0.1.0"

# =============================================================================
# SERVER
# =============================================================================
SERVER_NAME: Final[str] = "polyqueue-lsp"
SERVER_DISPLAY_NAME: Final[str] = "PolyQueue LSP"
DEFAULT_TCP_HOST: Final[str] = "127.0.0.1"
DEFAULT_TCP_PORT: Final[int] = 2087

# Text document sync kind advertised to the editor (1 = full document)
TEXT_SYNC_FULL: Final[int] = 1
COMPLETION_TRIGGER_CHARACTERS: Final[tuple[str, ...]] = (".", ":", "{", "[")

# =============================================================================
# COMMANDS
# =============================================================================
COMMAND_PREFIX: Final[str] = "poly-queue."
COMMAND_VALIDATE: Final[str] = "validate"
COMMAND_TEST_CONNECTION: Final[str] = "test-connection"
EXECUTABLE_COMMANDS: Final[tuple[str, ...]] = (
    f"{COMMAND_PREFIX}{COMMAND_VALIDATE}",
    f"{COMMAND_PREFIX}{COMMAND_TEST_CONNECTION}",
)

# Custom requests sent by the editor client
REQUEST_LIST_QUEUES: Final[str] = "polyqueue/listQueues"
REQUEST_QUEUE_STATUS: Final[str] = "polyqueue/queueStatus"
REQUEST_PUBLISH: Final[str] = "polyqueue/publish"
REQUEST_SUBSCRIBE: Final[str] = "polyqueue/subscribe"
REQUEST_PURGE_QUEUE: Final[str] = "polyqueue/purgeQueue"

# =============================================================================
# EXTERNAL TOOL DEFAULTS
# =============================================================================
DEFAULT_COMMAND_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_REQUEST_TIMEOUT_SECONDS: Final[float] = 60.0

# =============================================================================
# QUEUE SYSTEMS (for consistent referencing)
# =============================================================================
SYSTEM_REDIS_STREAMS: Final[str] = "redis_streams"
SYSTEM_RABBITMQ: Final[str] = "rabbitmq"
SYSTEM_NATS: Final[str] = "nats"
SYSTEM_NONE: Final[str] = "none"

# Detection priority: first adapter reporting its tool wins
DETECTION_ORDER: Final[tuple[str, ...]] = (
    SYSTEM_REDIS_STREAMS,
    SYSTEM_RABBITMQ,
    SYSTEM_NATS,
)

# =============================================================================
# REDIS STREAMS
# =============================================================================
REDIS_CLI: Final[str] = "redis-cli"
REDIS_DEFAULT_HOST: Final[str] = "localhost"
REDIS_DEFAULT_PORT: Final[int] = 6379
REDIS_DEFAULT_GROUP: Final[str] = "default-group"
REDIS_DEFAULT_CONSUMER: Final[str] = "consumer-1"
REDIS_SCAN_BATCH: Final[int] = 100

# =============================================================================
# RABBITMQ
# =============================================================================
RABBITMQ_CTL: Final[str] = "rabbitmqctl"
RABBITMQ_ADMIN: Final[str] = "rabbitmqadmin"
RABBITMQ_DEFAULT_HOST: Final[str] = "localhost"
RABBITMQ_DEFAULT_MANAGEMENT_PORT: Final[int] = 15672
RABBITMQ_DEFAULT_VHOST: Final[str] = "/"
RABBITMQ_PRIORITIES: Final[dict[str, int]] = {"low": 1, "normal": 5, "high": 10}
RABBITMQ_PERSISTENT_DELIVERY_MODE: Final[int] = 2

# =============================================================================
# NATS
# =============================================================================
NATS_CLI: Final[str] = "nats"
NATS_DEFAULT_SERVER: Final[str] = "nats://localhost:4222"
NATS_DEFAULT_CONSUMER: Final[str] = "default-consumer"

# =============================================================================
# SUBSCRIBE DEFAULTS
# =============================================================================
DEFAULT_SUBSCRIBE_COUNT: Final[int] = 10

# =============================================================================
# DIAGNOSTICS
# =============================================================================
DIAGNOSTIC_SOURCE: Final[str] = "poly-queue"
MAX_DIAGNOSTICS: Final[int] = 50

# =============================================================================
# CONFIG FILE
# =============================================================================
CONFIG_FILE_NAME: Final[str] = ".polyqueue.yaml"

# =============================================================================
# LOGGING
# =============================================================================
LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

"""Adapters for the supported queue systems.

This package contains one adapter per backing system:
    - RedisStreamsAdapter: Redis Streams via redis-cli
    - RabbitMQAdapter: RabbitMQ via rabbitmqctl/rabbitmqadmin
    - NatsAdapter: NATS and JetStream via the nats CLI

All adapters implement the Adapter interface and run their tool through
a CommandRunner.
"""

from polyqueue_lsp.adapters.base import Adapter
from polyqueue_lsp.adapters.nats import NatsAdapter
from polyqueue_lsp.adapters.rabbitmq import RabbitMQAdapter
from polyqueue_lsp.adapters.redis_streams import RedisStreamsAdapter
from polyqueue_lsp.adapters.runner import CommandRunner

__all__ = [
    "Adapter",
    "CommandRunner",
    "NatsAdapter",
    "RabbitMQAdapter",
    "RedisStreamsAdapter",
]

"""Completion suggestions per queue system.

Suggestions are static tables picked by the detected system and the
cursor's trigger classification. An adapter-specific branch never falls
through to the generic list.
"""

from __future__ import annotations

from polyqueue_lsp.models import CompletionItem, CursorContext, QueueSystem

# Editor protocol CompletionItemKind values, keyed by the name shown as detail
ITEM_KINDS: dict[str, int] = {
    "text": 1,
    "function": 3,
    "field": 5,
    "value": 12,
    "enum": 13,
    "keyword": 14,
}

# =============================================================================
# REDIS STREAMS
# =============================================================================
REDIS_APPEND_KEYWORDS = ("STREAMS", "COUNT", "BLOCK", "MAXLEN")
REDIS_READ_KEYWORDS = ("COUNT", "BLOCK", "STREAMS")
REDIS_COMMANDS = (
    "XADD",
    "XREAD",
    "XREADGROUP",
    "XGROUP",
    "XACK",
    "XPENDING",
    "XLEN",
    "XRANGE",
    "XREVRANGE",
    "XTRIM",
    "XINFO",
)

# =============================================================================
# RABBITMQ
# =============================================================================
RABBITMQ_EXCHANGE_TYPES = ("direct", "topic", "fanout", "headers")
RABBITMQ_DECLARATION_TYPES = ("queue", "exchange", "binding")
RABBITMQ_CONFIG_KEYS = (
    "listeners",
    "tcp_listeners",
    "ssl_listeners",
    "default_user",
    "default_pass",
    "default_vhost",
    "disk_free_limit",
    "vm_memory_high_watermark",
)
RABBITMQ_QUEUE_ARGUMENTS = (
    "durable",
    "auto_delete",
    "exclusive",
    "arguments",
    "x-message-ttl",
    "x-max-length",
    "x-dead-letter-exchange",
)

# =============================================================================
# NATS
# =============================================================================
NATS_SUBJECT_ROOTS = ("events", "commands", "requests", "responses")
NATS_CONFIG_KEYS = (
    "port",
    "host",
    "client_advertise",
    "http",
    "cluster",
    "jetstream",
    "accounts",
    "authorization",
)
NATS_CLIENT_VERBS = (
    "subscribe",
    "publish",
    "request",
    "reply",
    "jetstream",
    "stream",
    "consumer",
)

GENERIC_VERBS = ("publish", "subscribe", "consume", "ack", "nack")

CONFIG_FILE_SUFFIX = ".conf"


def completion_item(label: str, kind_name: str) -> CompletionItem:
    """Build an item whose detail is the kind name and whose insert text is the label.

    Unknown kind names map to plain text.
    """
    return CompletionItem(
        label=label,
        kind=ITEM_KINDS.get(kind_name, ITEM_KINDS["text"]),
        detail=kind_name,
        insert_text=label,
    )


def _items(labels: tuple[str, ...], kind_name: str) -> list[CompletionItem]:
    return [completion_item(label, kind_name) for label in labels]


def complete(system: QueueSystem, context: CursorContext, uri: str) -> list[CompletionItem]:
    """Return the completion items for a cursor position.

    Args:
        system: The session's detected queue system.
        context: Cursor context from the extractor.
        uri: Document URI; `.conf` documents get configuration keys.

    Returns:
        Items in table order. Empty when nothing applies.
    """
    if system == "redis_streams":
        return _complete_redis_streams(context)
    if system == "rabbitmq":
        return _complete_rabbitmq(context, uri)
    if system == "nats":
        return _complete_nats(context, uri)
    return _complete_generic(context)


def _complete_redis_streams(context: CursorContext) -> list[CompletionItem]:
    if context.trigger == "stream_append_key":
        return _items(REDIS_APPEND_KEYWORDS, "keyword")
    if context.trigger == "stream_read_options":
        return _items(REDIS_READ_KEYWORDS, "keyword")
    return _items(REDIS_COMMANDS, "function")


def _complete_rabbitmq(context: CursorContext, uri: str) -> list[CompletionItem]:
    if context.trigger == "exchange_type":
        return _items(RABBITMQ_EXCHANGE_TYPES, "enum")
    if context.trigger == "binding_type":
        return _items(RABBITMQ_DECLARATION_TYPES, "enum")
    if uri.endswith(CONFIG_FILE_SUFFIX):
        return _items(RABBITMQ_CONFIG_KEYS, "field")
    return _items(RABBITMQ_QUEUE_ARGUMENTS, "field")


def _complete_nats(context: CursorContext, uri: str) -> list[CompletionItem]:
    if context.trigger == "subject":
        return _items(NATS_SUBJECT_ROOTS, "value")
    if uri.endswith(CONFIG_FILE_SUFFIX):
        return _items(NATS_CONFIG_KEYS, "field")
    return _items(NATS_CLIENT_VERBS, "function")


def _complete_generic(context: CursorContext) -> list[CompletionItem]:
    if context.trigger == "none":
        return _items(GENERIC_VERBS, "function")
    return []

"""Hover documentation per queue system.

Static markdown tables. Redis commands are matched case-insensitively;
configuration keys for the other systems are matched exactly.
"""

from __future__ import annotations

from polyqueue_lsp.models import QueueSystem

REDIS_DOCS: dict[str, str] = {
    "XADD": (
        "**XADD key ID field value [field value ...]** - Add entry to stream\n\n"
        "Appends new entry to the stream. ID can be `*` for auto-generation.\n\n"
        "Example: `XADD mystream * sensor-id 1234 temperature 19.8`"
    ),
    "XREAD": (
        "**XREAD [COUNT count] [BLOCK milliseconds] STREAMS key [key ...] ID [ID ...]** "
        "- Read from streams\n\n"
        "Reads entries from one or more streams.\n\n"
        "Example: `XREAD COUNT 2 STREAMS mystream 0`"
    ),
    "XREADGROUP": (
        "**XREADGROUP GROUP group consumer [COUNT count] [BLOCK milliseconds] "
        "STREAMS key [key ...] ID [ID ...]** - Read as consumer group\n\n"
        "Reads entries as part of a consumer group."
    ),
    "XGROUP": (
        "**XGROUP subcommand** - Manage consumer groups\n\n"
        "Subcommands: CREATE, SETID, DESTROY, DELCONSUMER"
    ),
    "XACK": (
        "**XACK key group ID [ID ...]** - Acknowledge processed messages\n\n"
        "Marks messages as processed in a consumer group."
    ),
    "XPENDING": (
        "**XPENDING key group** - Get pending messages\n\n"
        "Returns information about pending messages in a consumer group."
    ),
    "XLEN": "**XLEN key** - Get stream length\n\nReturns the number of entries in the stream.",
    "XRANGE": (
        "**XRANGE key start end [COUNT count]** - Get range of entries\n\n"
        "Returns entries between start and end IDs."
    ),
    "XREVRANGE": (
        "**XREVRANGE key end start [COUNT count]** - Get range of entries in reverse\n\n"
        "Returns entries between end and start IDs, newest first."
    ),
    "XTRIM": (
        "**XTRIM key strategy** - Trim stream\n\n"
        "Removes entries from the stream. Strategies: MAXLEN, MINID"
    ),
    "XINFO": (
        "**XINFO subcommand key** - Inspect streams\n\n"
        "Subcommands: STREAM, GROUPS, CONSUMERS"
    ),
    "STREAMS": (
        "**STREAMS** - Specify stream keys and IDs\n\n"
        "Used with XREAD/XREADGROUP to specify streams and starting positions."
    ),
    "COUNT": "**COUNT** - Limit number of entries\n\nLimits the number of entries returned.",
    "BLOCK": (
        "**BLOCK milliseconds** - Block for timeout\n\n"
        "Blocks connection until new entries arrive or timeout."
    ),
    "MAXLEN": (
        "**MAXLEN [~] count** - Cap stream length\n\n"
        "Trims the stream to about `count` entries when appending."
    ),
}

RABBITMQ_DOCS: dict[str, str] = {
    "listeners": (
        "**listeners** - Network listeners configuration\n\n"
        "Defines network interfaces and ports for connections."
    ),
    "tcp_listeners": (
        "**tcp_listeners** - TCP listener ports\n\nPort(s) for AMQP connections. Default: 5672"
    ),
    "ssl_listeners": (
        "**ssl_listeners** - SSL/TLS listener ports\n\nPort(s) for secure AMQP connections."
    ),
    "default_user": "**default_user** - Default username\n\nDefault user created on first startup.",
    "default_pass": "**default_pass** - Default password\n\nPassword for default user.",
    "default_vhost": (
        "**default_vhost** - Default virtual host\n\nDefault vhost created on startup. Default: /"
    ),
    "disk_free_limit": (
        "**disk_free_limit** - Disk free space limit\n\n"
        "Minimum free disk space before flow control."
    ),
    "vm_memory_high_watermark": (
        "**vm_memory_high_watermark** - Memory threshold\n\n"
        "Memory threshold for flow control. Default: 0.4"
    ),
    "durable": "**durable** - Queue durability\n\nIf true, queue survives broker restart.",
    "auto_delete": (
        "**auto_delete** - Auto-delete flag\n\n"
        "If true, queue is deleted when last consumer disconnects."
    ),
    "exclusive": (
        "**exclusive** - Exclusive queue\n\nIf true, queue is used by only one connection."
    ),
    "arguments": (
        "**arguments** - Optional queue arguments\n\n"
        "Extra `x-` settings such as TTL, length limits and dead lettering."
    ),
    "x-message-ttl": (
        "**x-message-ttl** - Message time-to-live\n\nTime in milliseconds before messages expire."
    ),
    "x-max-length": (
        "**x-max-length** - Maximum queue length\n\nMaximum number of messages in queue."
    ),
    "x-dead-letter-exchange": (
        "**x-dead-letter-exchange** - Dead letter exchange\n\n"
        "Exchange to send rejected or expired messages."
    ),
    "direct": "**direct** - Direct exchange type\n\nRoutes messages with exact routing key match.",
    "topic": (
        "**topic** - Topic exchange type\n\nRoutes messages using pattern matching on routing key."
    ),
    "fanout": "**fanout** - Fanout exchange type\n\nBroadcasts messages to all bound queues.",
    "headers": "**headers** - Headers exchange type\n\nRoutes based on message header attributes.",
}

NATS_DOCS: dict[str, str] = {
    "port": "**port** - Client connection port\n\nPort for client connections. Default: 4222",
    "host": "**host** - Host address\n\nHost address to bind to. Default: 0.0.0.0",
    "client_advertise": (
        "**client_advertise** - Advertised client URL\n\nURL advertised to clients for connection."
    ),
    "http": "**http** - HTTP monitoring port\n\nPort for HTTP monitoring endpoint.",
    "cluster": "**cluster** - Cluster configuration\n\nConfiguration for NATS cluster mode.",
    "jetstream": (
        "**jetstream** - JetStream configuration\n\nEnables and configures JetStream persistence."
    ),
    "accounts": "**accounts** - Multi-tenancy accounts\n\nDefines accounts for multi-tenancy.",
    "authorization": (
        "**authorization** - Authorization settings\n\nUser and permission configuration."
    ),
    "subscribe": (
        "**subscribe(subject, callback)** - Subscribe to subject\n\n"
        "Subscribes to messages on a subject."
    ),
    "publish": "**publish(subject, data)** - Publish message\n\nPublishes a message to a subject.",
    "request": (
        "**request(subject, data, timeout)** - Request-reply\n\n"
        "Sends a request and waits for reply."
    ),
    "reply": "**reply(subject, data)** - Send reply\n\nSends a reply to a request.",
    "stream": "**stream** - JetStream stream\n\nPersistent message stream in JetStream.",
    "consumer": "**consumer** - JetStream consumer\n\nConsumer for processing stream messages.",
}

GENERIC_DOCS: dict[str, str] = {
    "publish": "**publish** - Send message to queue\n\nPublishes a message to the queue system.",
    "subscribe": "**subscribe** - Receive messages\n\nSubscribes to receive messages from a queue.",
    "consume": "**consume** - Process messages\n\nConsumes messages from a queue.",
    "ack": "**ack** - Acknowledge message\n\nAcknowledges successful message processing.",
    "nack": "**nack** - Negative acknowledgement\n\nRejects a message, may trigger redelivery.",
}


def hover_for(system: QueueSystem, word: str | None) -> str | None:
    """Look up markdown documentation for a word.

    Args:
        system: The session's detected queue system.
        word: Word under the cursor, or None.

    Returns:
        Markdown text, or None when the word has no entry.
    """
    if not word:
        return None
    if system == "redis_streams":
        return REDIS_DOCS.get(word.upper())
    if system == "rabbitmq":
        return RABBITMQ_DOCS.get(word)
    if system == "nats":
        return NATS_DOCS.get(word)
    return GENERIC_DOCS.get(word)

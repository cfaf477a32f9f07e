"""PolyQueue LSP - language server for message queue systems.

Detects whether a project uses Redis Streams, RabbitMQ or NATS by probing
their CLI tools, then offers completion, hover and configuration
diagnostics for that system, plus queue operations through editor
commands and custom requests.

Modules:
    - adapters: One adapter per queue system, wrapping its CLI tool
    - detector: Picks the active queue system
    - session: Per-connection state and request handling
    - server: Editor protocol binding (pygls)
"""

from polyqueue_lsp.constants import VERSION

__version__ = VERSION

__all__ = ["__version__"]

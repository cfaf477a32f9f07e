"""Language server for PolyQueue LSP.

This module binds the editor protocol (via pygls) to a Session. Handlers
here only translate protocol messages to Session calls and results back
to protocol types.

The server provides:
    - Full-document sync with diagnostics on open and save
    - Completion and hover for the detected queue system
    - Commands: poly-queue.validate, poly-queue.test-connection
    - Custom requests: polyqueue/listQueues, polyqueue/queueStatus,
      polyqueue/publish, polyqueue/subscribe, polyqueue/purgeQueue

Example:
    Run over stdio:
        polyqueue-lsp serve
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from polyqueue_lsp.config import load_config
from polyqueue_lsp.constants import (
    COMMAND_PREFIX,
    COMMAND_TEST_CONNECTION,
    COMMAND_VALIDATE,
    COMPLETION_TRIGGER_CHARACTERS,
    DEFAULT_TCP_HOST,
    DEFAULT_TCP_PORT,
    REQUEST_LIST_QUEUES,
    REQUEST_PUBLISH,
    REQUEST_PURGE_QUEUE,
    REQUEST_QUEUE_STATUS,
    REQUEST_SUBSCRIBE,
    SERVER_NAME,
    VERSION,
)
from polyqueue_lsp.exceptions import ConfigError
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import CompletionItem, Diagnostic, PolyQueueConfig
from polyqueue_lsp.session import Session, path_from_uri

logger = get_logger(__name__)


class PolyQueueLanguageServer(LanguageServer):
    """pygls server carrying the per-connection Session."""

    def __init__(self) -> None:
        super().__init__(
            SERVER_NAME,
            VERSION,
            text_document_sync_kind=types.TextDocumentSyncKind.Full,
        )
        self.session = Session(PolyQueueConfig(), publish=self.publish)

    def publish(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        """Send a complete diagnostics set for one document."""
        self.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(
                uri=uri,
                diagnostics=[to_lsp_diagnostic(d) for d in diagnostics],
            )
        )


# =============================================================================
# CONVERSIONS
# =============================================================================


def to_lsp_diagnostic(diagnostic: Diagnostic) -> types.Diagnostic:
    start = diagnostic.range.start
    end = diagnostic.range.end
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=start.line, character=start.character),
            end=types.Position(line=end.line, character=end.character),
        ),
        message=diagnostic.message,
        severity=types.DiagnosticSeverity(diagnostic.severity),
        source=diagnostic.source,
    )


def to_lsp_completion(item: CompletionItem) -> types.CompletionItem:
    return types.CompletionItem(
        label=item.label,
        kind=types.CompletionItemKind(item.kind),
        detail=item.detail,
        insert_text=item.insert_text,
    )


def plain(value: Any) -> Any:
    """Convert request params into plain dicts and lists.

    Params of custom requests may arrive as attribute objects rather than
    dicts, depending on how the framework deserialized them.
    """
    if hasattr(value, "_asdict"):
        return plain(value._asdict())
    if isinstance(value, Mapping):
        return {key: plain(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [plain(item) for item in value]
    return value


def command_arguments(arguments: tuple[Any, ...]) -> list[Any]:
    """Normalize command arguments passed either unpacked or as one list."""
    if len(arguments) == 1 and isinstance(arguments[0], list | tuple):
        return plain(list(arguments[0]))
    return plain(list(arguments))


def _queue_name(params: dict[str, Any]) -> str:
    return str(params.get("queueName") or params.get("queue_name") or "")


# =============================================================================
# SERVER
# =============================================================================

server = PolyQueueLanguageServer()


@server.feature(types.INITIALIZE)
def on_initialize(ls: PolyQueueLanguageServer, params: types.InitializeParams) -> None:
    root_uri = params.root_uri
    if root_uri is None and params.workspace_folders:
        root_uri = params.workspace_folders[0].uri

    try:
        config = load_config(project_root=path_from_uri(root_uri))
    except ConfigError as e:
        logger.error("Invalid configuration, using defaults", extra={"error": str(e)})
        ls.window_show_message(
            types.ShowMessageParams(type=types.MessageType.Error, message=f"PolyQueue: {e.message}")
        )
        config = PolyQueueConfig()

    ls.session = Session(config, publish=ls.publish)
    ls.session.initialize(root_uri)


@server.feature(types.INITIALIZED)
async def on_initialized(ls: PolyQueueLanguageServer, params: types.InitializedParams) -> None:
    system = await ls.session.detect()
    logger.info("Server initialized", extra={"system": system})


@server.feature(types.SHUTDOWN)
async def on_shutdown(ls: PolyQueueLanguageServer, params: None) -> None:
    await ls.session.shutdown()


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: PolyQueueLanguageServer, params: types.DidOpenTextDocumentParams) -> None:
    document = params.text_document
    ls.session.did_open(document.uri, document.text, document.version)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: PolyQueueLanguageServer, params: types.DidChangeTextDocumentParams) -> None:
    if not params.content_changes:
        return
    # Full sync: the last change carries the whole document
    text = params.content_changes[-1].text
    ls.session.did_change(params.text_document.uri, text, params.text_document.version)


@server.feature(types.TEXT_DOCUMENT_DID_SAVE, types.SaveOptions(include_text=False))
def did_save(ls: PolyQueueLanguageServer, params: types.DidSaveTextDocumentParams) -> None:
    ls.session.did_save(params.text_document.uri, params.text)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: PolyQueueLanguageServer, params: types.DidCloseTextDocumentParams) -> None:
    ls.session.did_close(params.text_document.uri)


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(
        trigger_characters=list(COMPLETION_TRIGGER_CHARACTERS),
        resolve_provider=False,
    ),
)
def completion(ls: PolyQueueLanguageServer, params: types.CompletionParams) -> types.CompletionList:
    items = ls.session.completion(
        params.text_document.uri,
        params.position.line,
        params.position.character,
    )
    return types.CompletionList(
        is_incomplete=False,
        items=[to_lsp_completion(item) for item in items],
    )


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(ls: PolyQueueLanguageServer, params: types.HoverParams) -> types.Hover | None:
    text = ls.session.hover(
        params.text_document.uri,
        params.position.line,
        params.position.character,
    )
    if text is None:
        return None
    return types.Hover(contents=types.MarkupContent(kind=types.MarkupKind.Markdown, value=text))


# =============================================================================
# COMMANDS
# =============================================================================


@server.command(f"{COMMAND_PREFIX}{COMMAND_VALIDATE}")
async def validate_command(ls: PolyQueueLanguageServer, *arguments: Any) -> dict[str, Any]:
    return await ls.session.execute_command(COMMAND_VALIDATE, command_arguments(arguments))


@server.command(f"{COMMAND_PREFIX}{COMMAND_TEST_CONNECTION}")
async def connection_command(ls: PolyQueueLanguageServer, *arguments: Any) -> dict[str, Any]:
    return await ls.session.execute_command(COMMAND_TEST_CONNECTION, command_arguments(arguments))


# =============================================================================
# CUSTOM REQUESTS
# =============================================================================


@server.feature(REQUEST_LIST_QUEUES)
async def list_queues(ls: PolyQueueLanguageServer, params: Any) -> dict[str, Any]:
    return await ls.session.list_queues()


@server.feature(REQUEST_QUEUE_STATUS)
async def queue_status(ls: PolyQueueLanguageServer, params: Any) -> dict[str, Any]:
    return await ls.session.queue_status(_queue_name(plain(params) or {}))


@server.feature(REQUEST_PUBLISH)
async def publish(ls: PolyQueueLanguageServer, params: Any) -> dict[str, Any]:
    request = plain(params) or {}
    return await ls.session.publish(
        _queue_name(request),
        request.get("message", ""),
        request.get("options"),
    )


@server.feature(REQUEST_SUBSCRIBE)
async def subscribe(ls: PolyQueueLanguageServer, params: Any) -> dict[str, Any]:
    request = plain(params) or {}
    options = request.get("options")
    if "count" in request and (options is None or isinstance(options, Mapping)):
        options = {"count": request["count"], **(options or {})}
    return await ls.session.subscribe(_queue_name(request), options)


@server.feature(REQUEST_PURGE_QUEUE)
async def purge_queue(ls: PolyQueueLanguageServer, params: Any) -> dict[str, Any]:
    return await ls.session.purge_queue(_queue_name(plain(params) or {}))


def start(tcp: bool = False, host: str = DEFAULT_TCP_HOST, port: int = DEFAULT_TCP_PORT) -> None:
    """Run the language server until the editor disconnects.

    Args:
        tcp: Listen on a TCP socket instead of stdio.
        host: TCP host.
        port: TCP port.
    """
    if tcp:
        logger.info(
            "Starting language server",
            extra={"transport": "tcp", "host": host, "port": port},
        )
        server.start_tcp(host, port)
    else:
        logger.info("Starting language server", extra={"transport": "stdio"})
        server.start_io()

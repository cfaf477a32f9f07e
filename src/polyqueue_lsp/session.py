"""Per-connection session state and request handling.

The Session owns everything a single editor connection needs: the project
root, the detected queue system, the open documents and the pending
diagnostics passes. The protocol binding in server.py only translates
editor messages into calls on this object, so the whole request surface
can be exercised without a running language server.

Example:
    session = Session(config, publish=lambda uri, found: print(uri, found))
    session.initialize("file:///work/orders")
    await session.detect()
    session.did_open("file:///work/orders/rabbitmq.conf", text, 1)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
from urllib.request import url2pathname

from pydantic import TypeAdapter, ValidationError

from polyqueue_lsp.adapters import Adapter, CommandRunner
from polyqueue_lsp.completion import complete
from polyqueue_lsp.constants import (
    COMMAND_PREFIX,
    COMMAND_TEST_CONNECTION,
    COMMAND_VALIDATE,
    COMPLETION_TRIGGER_CHARACTERS,
    EXECUTABLE_COMMANDS,
    SERVER_DISPLAY_NAME,
    TEXT_SYNC_FULL,
    VERSION,
)
from polyqueue_lsp.context import extract_cursor_context, word_at_position
from polyqueue_lsp.detector import build_adapters, detect_queue_system
from polyqueue_lsp.diagnostics import DiagnosticsEngine
from polyqueue_lsp.documents import DocumentStore
from polyqueue_lsp.exceptions import AdapterError, CommandTimeoutError
from polyqueue_lsp.hover import hover_for
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import (
    CompletionItem,
    Diagnostic,
    PolyQueueConfig,
    PublishOptions,
    QueueSystem,
    SubscribeOptions,
)

logger = get_logger(__name__)

PublishDiagnostics = Callable[[str, list[Diagnostic]], None]

NO_SYSTEM_MESSAGE = "No queue system detected"

# A message is a structured record or raw text
MESSAGE_BODY: TypeAdapter[dict[str, Any] | str] = TypeAdapter(dict[str, Any] | str)


def path_from_uri(uri: str | None) -> Path | None:
    """Convert a file:// URI into a local path. Other schemes yield None."""
    if not uri:
        return None
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return None
    return Path(url2pathname(parsed.path))


def _failure(message: str, kind: str | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {"success": False, "error": message}
    if kind:
        result["kind"] = kind
    return result


def _error_result(error: AdapterError) -> dict[str, Any]:
    return _failure(error.message, type(error).__name__)


class Session:
    """State and handlers for one editor connection.

    Attributes:
        config: Loaded configuration.
        adapters: One adapter per queue system.
        documents: Open documents.
        engine: Diagnostics engine.
        project_root: Workspace folder, or None when the editor opened none.
        system: Detected queue system; "none" until detection completes.
    """

    def __init__(
        self,
        config: PolyQueueConfig | None = None,
        adapters: Mapping[QueueSystem, Adapter] | None = None,
        publish: PublishDiagnostics | None = None,
        engine: DiagnosticsEngine | None = None,
        *,
        runner: CommandRunner | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            config: Configuration. Defaults are used if omitted.
            adapters: Adapters keyed by system. Built from the config if omitted.
            publish: Callback receiving each completed diagnostics set.
            engine: Diagnostics engine. Built from the config if omitted.
            runner: Subprocess port used when adapters are built here.
        """
        self.config = config or PolyQueueConfig()
        self.adapters: Mapping[QueueSystem, Adapter] = (
            adapters if adapters is not None else build_adapters(self.config, runner)
        )
        self.engine = engine or DiagnosticsEngine(self.config.max_diagnostics)
        self.documents = DocumentStore()
        self.project_root: Path | None = None
        self.system: QueueSystem = "none"

        self._publish = publish
        self._detected = False
        self._pending: dict[str, asyncio.Task[None]] = {}

    @property
    def active_adapter(self) -> Adapter | None:
        if self.system == "none":
            return None
        return self.adapters.get(self.system)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self, root_uri: str | None) -> dict[str, Any]:
        """Record the project root and describe the server's capabilities.

        Args:
            root_uri: Workspace root URI sent by the editor.

        Returns:
            The capability advertisement and server info.
        """
        self.project_root = path_from_uri(root_uri)
        logger.info(
            "Initializing session",
            extra={"project_root": str(self.project_root) if self.project_root else None},
        )

        return {
            "capabilities": {
                "textDocumentSync": {
                    "openClose": True,
                    "change": TEXT_SYNC_FULL,
                    "save": {"includeText": False},
                },
                "completionProvider": {
                    "triggerCharacters": list(COMPLETION_TRIGGER_CHARACTERS),
                    "resolveProvider": False,
                },
                "hoverProvider": True,
                "executeCommandProvider": {"commands": list(EXECUTABLE_COMMANDS)},
            },
            "serverInfo": {"name": SERVER_DISPLAY_NAME, "version": VERSION},
        }

    async def detect(self) -> QueueSystem:
        """Run queue system detection once per session.

        Returns:
            The detected system. Later calls return the first result.
        """
        if not self._detected:
            self._detected = True
            self.system = await detect_queue_system(self.project_root, self.adapters)
        return self.system

    async def shutdown(self) -> None:
        """Cancel any diagnostics passes still pending."""
        tasks = list(self._pending.values())
        self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Session shut down", extra={"cancelled_passes": len(tasks)})

    # =========================================================================
    # DOCUMENT SYNC
    # =========================================================================

    def did_open(self, uri: str, text: str, version: int) -> None:
        self.documents.open(uri, text, version)
        logger.info("Document opened", extra={"uri": uri})
        self._schedule_diagnostics(uri)

    def did_change(self, uri: str, text: str, version: int) -> None:
        self.documents.replace(uri, text, version)

    def did_save(self, uri: str, text: str | None = None) -> None:
        """Re-validate a saved document.

        The editor is not asked to include the text on save, so the stored
        text is used unless a client sends it anyway.
        """
        if text is not None:
            current = self.documents.get(uri)
            self.documents.replace(uri, text, current.version + 1 if current else 0)
        logger.info("Document saved", extra={"uri": uri})
        self._schedule_diagnostics(uri)

    def did_close(self, uri: str) -> None:
        self._cancel_pending(uri)
        self.documents.close(uri)
        logger.info("Document closed", extra={"uri": uri})
        self._emit(uri, [])

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def diagnose(self, uri: str) -> list[Diagnostic]:
        """Run one diagnostics pass over a stored document."""
        document = self.documents.get(uri)
        if document is None:
            return []
        return self.engine.validate(uri, document.text, self.system)

    def _schedule_diagnostics(self, uri: str) -> None:
        """Start a diagnostics pass in the background, superseding any pending one."""
        self._cancel_pending(uri)
        task = asyncio.get_running_loop().create_task(self._run_diagnostics(uri))
        self._pending[uri] = task
        task.add_done_callback(lambda done: self._forget(uri, done))

    async def _run_diagnostics(self, uri: str) -> None:
        diagnostics = self.diagnose(uri)
        self._emit(uri, diagnostics)

    def _cancel_pending(self, uri: str) -> None:
        task = self._pending.pop(uri, None)
        if task is not None and not task.done():
            task.cancel()

    def _forget(self, uri: str, task: asyncio.Task[None]) -> None:
        if self._pending.get(uri) is task:
            del self._pending[uri]
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Diagnostics pass failed",
                extra={"uri": uri, "error": str(task.exception())},
            )

    def _emit(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        if self._publish is not None:
            self._publish(uri, diagnostics)

    # =========================================================================
    # COMPLETION AND HOVER
    # =========================================================================

    def _text(self, uri: str) -> str:
        document = self.documents.get(uri)
        return document.text if document else ""

    def completion(self, uri: str, line: int, character: int) -> list[CompletionItem]:
        """Completion items for a cursor position. Never raises."""
        try:
            context = extract_cursor_context(self._text(uri), line, character)
            return complete(self.system, context, uri)
        except Exception as e:
            logger.exception("Completion failed", extra={"uri": uri, "error": str(e)})
            return []

    def hover(self, uri: str, line: int, character: int) -> str | None:
        """Markdown hover text for a cursor position. Never raises."""
        try:
            word = word_at_position(self._text(uri), line, character)
            return hover_for(self.system, word)
        except Exception as e:
            logger.exception("Hover failed", extra={"uri": uri, "error": str(e)})
            return None

    # =========================================================================
    # COMMANDS
    # =========================================================================

    async def execute_command(
        self,
        name: str,
        arguments: list[Any] | None = None,
    ) -> dict[str, Any]:
        """Run an editor command.

        Args:
            name: Command name, with or without the "poly-queue." prefix.
            arguments: Command arguments sent by the editor.

        Returns:
            A result dict with a "success" flag.
        """
        command = name.removeprefix(COMMAND_PREFIX)
        logger.info("Command received", extra={"command": command, "system": self.system})

        if command == COMMAND_VALIDATE:
            return self._validate(arguments or [])
        if command == COMMAND_TEST_CONNECTION:
            return await self._call("test-connection", self._test_connection)

        logger.warning("Unknown command", extra={"command": name})
        return _failure(f"Unknown command: {name}")

    def _validate(self, arguments: list[Any]) -> dict[str, Any]:
        if self.system == "none":
            return _failure(NO_SYSTEM_MESSAGE)

        uri = _uri_argument(arguments)
        uris = [uri] if uri else self.documents.uris()

        total = 0
        for target in uris:
            self._cancel_pending(target)
            diagnostics = self.diagnose(target)
            total += len(diagnostics)
            self._emit(target, diagnostics)

        return {
            "success": True,
            "system": self.system,
            "documents": len(uris),
            "diagnostics": total,
        }

    async def _test_connection(self, adapter: Adapter) -> dict[str, Any]:
        version = await adapter.version()
        queues = await adapter.list_queues()
        return {
            "system": self.system,
            "version": version,
            "queue_count": len(queues),
            "metadata": adapter.metadata().model_dump(),
        }

    # =========================================================================
    # QUEUE REQUESTS
    # =========================================================================

    async def list_queues(self) -> dict[str, Any]:
        async def call(adapter: Adapter) -> dict[str, Any]:
            return {"queues": await adapter.list_queues()}

        return await self._call("list_queues", call)

    async def queue_status(self, queue_name: str) -> dict[str, Any]:
        async def call(adapter: Adapter) -> dict[str, Any]:
            info = await adapter.queue_status(queue_name)
            return {"queue": info.model_dump()}

        return await self._call("queue_status", call)

    async def publish(
        self,
        queue_name: str,
        message: dict[str, Any] | str,
        options: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            body = MESSAGE_BODY.validate_python(message)
            publish_options = PublishOptions.model_validate(_options_input(options))
        except ValidationError as e:
            return _failure(
                f"Invalid publish request: {e.error_count()} error(s)", "ValidationError"
            )

        async def call(adapter: Adapter) -> dict[str, Any]:
            return {"message_id": await adapter.publish(queue_name, body, publish_options)}

        return await self._call("publish", call)

    async def subscribe(
        self,
        queue_name: str,
        options: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            subscribe_options = SubscribeOptions.model_validate(_options_input(options))
        except ValidationError as e:
            return _failure(
                f"Invalid subscribe options: {e.error_count()} error(s)", "ValidationError"
            )

        async def call(adapter: Adapter) -> dict[str, Any]:
            return {"messages": await adapter.subscribe(queue_name, subscribe_options)}

        return await self._call("subscribe", call)

    async def purge_queue(self, queue_name: str) -> dict[str, Any]:
        async def call(adapter: Adapter) -> dict[str, Any]:
            await adapter.purge_queue(queue_name)
            return {"purged": queue_name}

        return await self._call("purge_queue", call)

    async def _call(
        self,
        operation: str,
        call: Callable[[Adapter], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        """Run an adapter operation under the request deadline.

        Adapter errors become failure results carrying the error class name.
        """
        adapter = self.active_adapter
        if adapter is None:
            return _failure(NO_SYSTEM_MESSAGE)

        start_time = time.monotonic()
        deadline = self.config.request_timeout_seconds

        try:
            async with asyncio.timeout(deadline):
                result = await call(adapter)
        except TimeoutError:
            logger.warning(
                "Queue request timed out",
                extra={"operation": operation, "system": self.system, "timeout": deadline},
            )
            return _error_result(
                CommandTimeoutError(f"{operation} timed out after {deadline}s", adapter.name)
            )
        except AdapterError as e:
            logger.warning(
                "Queue request failed",
                extra={"operation": operation, "system": self.system, "error": str(e)},
            )
            return _error_result(e)

        logger.info(
            "Queue request completed",
            extra={
                "operation": operation,
                "system": self.system,
                "duration_ms": int((time.monotonic() - start_time) * 1000),
            },
        )
        return {"success": True, **result}


def _uri_argument(arguments: list[Any]) -> str | None:
    """The document URI passed to a command, as a string or a {"uri": ...} object."""
    if not arguments:
        return None
    first = arguments[0]
    if isinstance(first, str):
        return first
    if isinstance(first, Mapping):
        uri = first.get("uri")
        return uri if isinstance(uri, str) else None
    return None


def _options_input(options: Any) -> Any:
    """Request options as validator input; anything but a mapping fails validation."""
    if options is None:
        return {}
    if isinstance(options, Mapping):
        return dict(options)
    return options

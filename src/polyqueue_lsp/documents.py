"""In-memory store of open documents.

The editor syncs whole documents, so every change replaces the stored
state. DocumentState is immutable: a reader that fetched a snapshot keeps
a consistent view even while a newer version is stored.
"""

from __future__ import annotations

import threading

from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import DocumentState

logger = get_logger(__name__)


class DocumentStore:
    """Open documents keyed by URI."""

    def __init__(self) -> None:
        self._documents: dict[str, DocumentState] = {}
        self._lock = threading.Lock()

    def open(self, uri: str, text: str, version: int) -> DocumentState:
        """Start tracking a document (re-opening replaces it)."""
        state = DocumentState(uri=uri, text=text, version=version)
        with self._lock:
            self._documents[uri] = state
        return state

    def replace(self, uri: str, text: str, version: int) -> DocumentState:
        """Replace a document's full text.

        An unknown URI is opened. A version not newer than the stored one is
        ignored, so versions only ever increase while a document is open.

        Returns:
            The state now stored for the URI.
        """
        with self._lock:
            current = self._documents.get(uri)
            if current is not None and version <= current.version:
                logger.warning(
                    "Ignoring stale document change",
                    extra={"uri": uri, "version": version, "current_version": current.version},
                )
                return current

            state = DocumentState(uri=uri, text=text, version=version)
            self._documents[uri] = state
            return state

    def close(self, uri: str) -> None:
        """Stop tracking a document. Unknown URIs are ignored."""
        with self._lock:
            self._documents.pop(uri, None)

    def get(self, uri: str) -> DocumentState | None:
        with self._lock:
            return self._documents.get(uri)

    def uris(self) -> list[str]:
        with self._lock:
            return list(self._documents)

    def __contains__(self, uri: object) -> bool:
        with self._lock:
            return uri in self._documents

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

"""Tests for the editor protocol binding."""

from collections import namedtuple

from lsprotocol import types

from polyqueue_lsp.completion import completion_item
from polyqueue_lsp.models import Diagnostic, Range
from polyqueue_lsp.server import (
    PolyQueueLanguageServer,
    command_arguments,
    plain,
    server,
    to_lsp_completion,
    to_lsp_diagnostic,
)


class TestConversions:
    """Tests for model to protocol conversions."""

    def test_diagnostic(self) -> None:
        finding = Diagnostic(
            message="Missing 'port' configuration",
            severity=2,
            range=Range.whole_line(3, "host: 0.0.0.0"),
        )

        converted = to_lsp_diagnostic(finding)

        assert converted.message == "Missing 'port' configuration"
        assert converted.severity == types.DiagnosticSeverity.Warning
        assert converted.source == "poly-queue"
        assert converted.range.start == types.Position(line=3, character=0)
        assert converted.range.end == types.Position(line=3, character=13)

    def test_completion(self) -> None:
        converted = to_lsp_completion(completion_item("fanout", "enum"))

        assert converted.label == "fanout"
        assert converted.kind == types.CompletionItemKind.Enum
        assert converted.detail == "enum"
        assert converted.insert_text == "fanout"


class TestParams:
    """Tests for request and command argument normalization."""

    def test_plain_converts_attribute_objects(self) -> None:
        Options = namedtuple("Options", ["count", "durable"])
        Params = namedtuple("Params", ["queueName", "options"])

        result = plain(Params(queueName="orders", options=Options(count=3, durable=True)))

        assert result == {"queueName": "orders", "options": {"count": 3, "durable": True}}

    def test_plain_passes_dicts_through(self) -> None:
        assert plain({"queueName": "orders", "tags": ("a", "b")}) == {
            "queueName": "orders",
            "tags": ["a", "b"],
        }

    def test_unpacked_arguments(self) -> None:
        assert command_arguments(("file:///a.conf",)) == ["file:///a.conf"]

    def test_single_list_argument(self) -> None:
        assert command_arguments((["file:///a.conf", {"uri": "x"}],)) == [
            "file:///a.conf",
            {"uri": "x"},
        ]

    def test_no_arguments(self) -> None:
        assert command_arguments(()) == []


class TestServer:
    """Tests for the server instance."""

    def test_session_starts_unbound(self) -> None:
        assert isinstance(server, PolyQueueLanguageServer)
        assert server.session.system == "none"
        assert server.session.project_root is None

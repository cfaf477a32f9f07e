"""Tests for hover documentation."""

import pytest

from polyqueue_lsp.hover import GENERIC_DOCS, REDIS_DOCS, hover_for


class TestHover:
    """Tests for hover_for."""

    @pytest.mark.parametrize("word", ["XADD", "xadd", "XaDd"])
    def test_redis_is_case_insensitive(self, word: str) -> None:
        text = hover_for("redis_streams", word)

        assert text == REDIS_DOCS["XADD"]
        assert text.startswith("**XADD key ID")  # type: ignore[union-attr]

    def test_rabbitmq_is_exact(self) -> None:
        assert hover_for("rabbitmq", "durable") is not None
        assert hover_for("rabbitmq", "Durable") is None

    def test_rabbitmq_hyphenated_key(self) -> None:
        text = hover_for("rabbitmq", "x-message-ttl")

        assert text is not None
        assert "milliseconds" in text

    def test_nats(self) -> None:
        text = hover_for("nats", "port")

        assert text is not None
        assert "4222" in text

    def test_tables_are_per_system(self) -> None:
        assert hover_for("nats", "XADD") is None
        assert hover_for("redis_streams", "durable") is None

    def test_no_system_uses_generic_table(self) -> None:
        assert hover_for("none", "nack") == GENERIC_DOCS["nack"]
        assert hover_for("none", "XADD") is None

    def test_no_word(self) -> None:
        assert hover_for("redis_streams", None) is None
        assert hover_for("nats", "") is None

    def test_unknown_word(self) -> None:
        assert hover_for("redis_streams", "SET") is None

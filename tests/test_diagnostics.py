"""Tests for configuration diagnostics."""

import pytest

from polyqueue_lsp.diagnostics import DiagnosticsEngine
from polyqueue_lsp.models import Position

REDIS_URI = "file:///etc/redis/redis.conf"
RABBITMQ_URI = "file:///etc/rabbitmq/rabbitmq.conf"
NATS_URI = "file:///etc/nats/nats-server.conf"


@pytest.fixture
def engine() -> DiagnosticsEngine:
    """Create an engine with the default cap."""
    return DiagnosticsEngine()


class TestRedisRules:
    """Tests for redis.conf validation."""

    def test_bind_all_interfaces_without_password(self, engine: DiagnosticsEngine) -> None:
        text = "port 6379\nbind 0.0.0.0\nappendonly yes"

        findings = engine.validate(REDIS_URI, text, "redis_streams")

        assert len(findings) == 1
        assert findings[0].severity == 2
        assert findings[0].message == "bind 0.0.0.0 without requirepass is insecure"
        assert findings[0].range.start == Position(line=1, character=0)
        assert findings[0].range.end == Position(line=1, character=len("bind 0.0.0.0"))

    def test_password_silences_warnings(self, engine: DiagnosticsEngine) -> None:
        text = "bind 0.0.0.0\nprotected-mode no\nrequirepass s3cret"

        assert engine.validate(REDIS_URI, text, "redis_streams") == []

    def test_commented_password_does_not_count(self, engine: DiagnosticsEngine) -> None:
        text = "bind 0.0.0.0\n# requirepass s3cret"

        assert len(engine.validate(REDIS_URI, text, "redis_streams")) == 1

    def test_protected_mode_off(self, engine: DiagnosticsEngine) -> None:
        findings = engine.validate(REDIS_URI, "bind 127.0.0.1\nprotected-mode no", "redis_streams")

        assert [f.message for f in findings] == [
            "protected-mode no without requirepass is insecure"
        ]
        assert findings[0].range.start.line == 1

    def test_loopback_bind_is_fine(self, engine: DiagnosticsEngine) -> None:
        assert engine.validate(REDIS_URI, "bind 127.0.0.1 -::1", "redis_streams") == []

    def test_only_redis_conf_files(self, engine: DiagnosticsEngine) -> None:
        assert engine.validate("file:///app/settings.conf", "bind 0.0.0.0", "redis_streams") == []


class TestRabbitMQRules:
    """Tests for rabbitmq.conf validation."""

    def test_line_without_assignment_or_block(self, engine: DiagnosticsEngine) -> None:
        text = "# listeners\nlisteners.tcp.default = 5672\nthis line is wrong\n\nmanagement {"

        findings = engine.validate(RABBITMQ_URI, text, "rabbitmq")

        assert len(findings) == 1
        assert findings[0].severity == 1
        assert findings[0].message == "Invalid syntax: this line is wrong"
        assert findings[0].source == "poly-queue"
        assert findings[0].range.start.line == 2

    def test_range_counts_utf16_units(self, engine: DiagnosticsEngine) -> None:
        """Test characters outside the BMP widen the range by two units."""
        findings = engine.validate(RABBITMQ_URI, "queue \U0001f600", "rabbitmq")

        assert findings[0].range.end == Position(line=0, character=8)

    def test_valid_file(self, engine: DiagnosticsEngine) -> None:
        text = "default_vhost = /\nloopback_users.guest = false"

        assert engine.validate(RABBITMQ_URI, text, "rabbitmq") == []

    def test_only_conf_files(self, engine: DiagnosticsEngine) -> None:
        assert engine.validate("file:///app/definitions.json", "garbage", "rabbitmq") == []

    def test_cap(self, engine: DiagnosticsEngine) -> None:
        """Test 80 raw findings publish exactly 50."""
        text = "\n".join(f"bad line {i}" for i in range(80))

        findings = engine.validate(RABBITMQ_URI, text, "rabbitmq")

        assert len(findings) == 50
        assert findings[0].message == "Invalid syntax: bad line 0"
        assert findings[-1].message == "Invalid syntax: bad line 49"

    def test_custom_cap(self) -> None:
        engine = DiagnosticsEngine(max_diagnostics=5)
        text = "\n".join(f"bad line {i}" for i in range(8))

        assert len(engine.validate(RABBITMQ_URI, text, "rabbitmq")) == 5


class TestNatsRules:
    """Tests for NATS server config validation."""

    def test_missing_port(self, engine: DiagnosticsEngine) -> None:
        text = "host: 0.0.0.0\njetstream {\n  store_dir: /data\n}"

        findings = engine.validate(NATS_URI, text, "nats")

        assert len(findings) == 1
        assert findings[0].message == "Missing 'port' configuration"
        assert findings[0].range.start == Position(line=0, character=0)
        assert findings[0].range.end == Position(line=0, character=len("host: 0.0.0.0"))

    @pytest.mark.parametrize("line", ["port: 4222", "port = 4222", "port 4222", "  port:4222"])
    def test_port_forms(self, engine: DiagnosticsEngine, line: str) -> None:
        assert engine.validate(NATS_URI, f"host: 0.0.0.0\n{line}", "nats") == []

    def test_other_port_keys_do_not_count(self, engine: DiagnosticsEngine) -> None:
        findings = engine.validate(NATS_URI, "http_port: 8222", "nats")

        assert len(findings) == 1

    def test_commented_port_does_not_count(self, engine: DiagnosticsEngine) -> None:
        assert len(engine.validate(NATS_URI, "host: 0.0.0.0\n# port: 4222", "nats")) == 1


class TestEngine:
    """Tests for gating shared by all systems."""

    @pytest.mark.parametrize(
        ("uri", "system"),
        [(REDIS_URI, "redis_streams"), (RABBITMQ_URI, "rabbitmq"), (NATS_URI, "nats")],
    )
    def test_blank_or_comment_only_document(
        self, engine: DiagnosticsEngine, uri: str, system: str
    ) -> None:
        comment_only = "\n# nothing here\n   \n"

        assert engine.validate(uri, "", system) == []  # type: ignore[arg-type]
        assert engine.validate(uri, comment_only, system) == []  # type: ignore[arg-type]

    def test_no_system(self, engine: DiagnosticsEngine) -> None:
        assert engine.validate(RABBITMQ_URI, "bad line", "none") == []

    def test_each_pass_is_a_full_replacement(self, engine: DiagnosticsEngine) -> None:
        first = engine.validate(RABBITMQ_URI, "bad line", "rabbitmq")
        second = engine.validate(RABBITMQ_URI, "bad line", "rabbitmq")

        assert first == second
        assert len(second) == 1

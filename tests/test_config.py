"""Tests for configuration loading."""

from pathlib import Path

import pytest

from polyqueue_lsp.config import expand_env_vars, find_config_file, load_config
from polyqueue_lsp.exceptions import ConfigError


def _write(directory: Path, content: str) -> Path:
    path = directory / ".polyqueue.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestExpandEnvVars:
    """Tests for environment variable expansion."""

    def test_both_syntaxes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QUEUE_HOST", "cache.internal")

        assert expand_env_vars("${QUEUE_HOST}:$QUEUE_HOST") == "cache.internal:cache.internal"

    def test_unset_variable_is_left_alone(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("POLYQUEUE_UNSET_VAR", raising=False)

        assert expand_env_vars("${POLYQUEUE_UNSET_VAR}") == "${POLYQUEUE_UNSET_VAR}"

    def test_nested_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VHOST", "orders")

        assert expand_env_vars({"a": ["$VHOST", 5], "b": None}) == {"a": ["orders", 5], "b": None}


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "missing.yaml")

        assert config.redis.port == 6379
        assert config.rabbitmq.vhost == "/"
        assert config.nats.server == "nats://localhost:4222"
        assert config.max_diagnostics == 50

    def test_values(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            "redis:\n  host: cache\n  port: 6380\n"
            "nats:\n  server: nats://bus:4222\n"
            "request_timeout_seconds: 5\n",
        )

        config = load_config(path)

        assert (config.redis.host, config.redis.port) == ("cache", 6380)
        assert config.nats.server == "nats://bus:4222"
        assert config.request_timeout_seconds == 5
        assert config.rabbitmq.management_port == 15672

    def test_env_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RABBIT_VHOST", "/orders")
        path = _write(tmp_path, "rabbitmq:\n  vhost: ${RABBIT_VHOST}\n")

        assert load_config(path).rabbitmq.vhost == "/orders"

    def test_empty_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "")

        assert load_config(path).redis.host == "localhost"

    def test_found_from_project_root(self, tmp_path: Path) -> None:
        _write(tmp_path, "redis:\n  port: 7000\n")

        assert load_config(project_root=tmp_path).redis.port == 7000

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "redis: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "- just\n- a list\n")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(path)

    def test_invalid_port(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "redis:\n  port: not-a-port\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)

        assert exc_info.value.details["errors"] == 1


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_walks_parents(self, tmp_path: Path) -> None:
        expected = _write(tmp_path, "{}")
        nested = tmp_path / "services" / "orders"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == expected.resolve()

    def test_nearest_file_wins(self, tmp_path: Path) -> None:
        _write(tmp_path, "{}")
        nested = tmp_path / "orders"
        nested.mkdir()
        expected = _write(nested, "{}")

        assert find_config_file(nested) == expected.resolve()

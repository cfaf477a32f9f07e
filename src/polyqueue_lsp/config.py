"""Configuration loader for PolyQueue LSP.

This module handles loading and parsing configuration from YAML files,
with support for environment variable expansion.

The configuration only describes connection targets (hosts, ports, vhosts,
server URLs) and tool locations. Credentials are left to the CLI tools'
own configuration.

Example:
    config = load_config(project_root=Path("/work/orders-service"))
    print(f"Redis target: {config.redis.host}:{config.redis.port}")
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from polyqueue_lsp.constants import CONFIG_FILE_NAME
from polyqueue_lsp.exceptions import ConfigError
from polyqueue_lsp.logging import get_logger
from polyqueue_lsp.models import PolyQueueConfig

logger = get_logger(__name__)

# Pattern to match ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports both ${VAR_NAME} and $VAR_NAME syntax.
    If the env var is not set, the placeholder is left unchanged.

    Args:
        value: The value to expand (can be str, dict, list, or primitive).

    Returns:
        The value with environment variables expanded.
    """
    if isinstance(value, str):

        def replace_env_var(match: re.Match[str]) -> str:
            # Group 1 is ${VAR}, group 2 is $VAR
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return ENV_VAR_PATTERN.sub(replace_env_var, value)

    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]

    else:
        return value


def find_config_file(start: Path | None = None) -> Path | None:
    """Search for .polyqueue.yaml in a directory and its parents.

    Args:
        start: Directory to start from. Defaults to the current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start or Path.cwd()).resolve()

    for directory in [current, *current.parents]:
        config_file = directory / CONFIG_FILE_NAME
        if config_file.is_file():
            return config_file

    return None


def load_config(
    config_path: Path | None = None,
    *,
    project_root: Path | None = None,
) -> PolyQueueConfig:
    """Load configuration from a YAML file.

    Environment variables in the format ${VAR_NAME} or $VAR_NAME are expanded.

    Args:
        config_path: Explicit path to a config file. If None, searches for
                    .polyqueue.yaml starting at project_root.
        project_root: Directory to start the search from when no explicit
                     path is given.

    Returns:
        Loaded configuration, or defaults when no file exists.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation.
    """
    if config_path is None:
        config_path = find_config_file(project_root)

    if config_path is None or not config_path.exists():
        return PolyQueueConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {config_path.name}",
            details={"path": str(config_path), "error": str(e)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"{config_path.name} must contain a mapping",
            details={"path": str(config_path)},
        )

    data = expand_env_vars(data)

    try:
        config = PolyQueueConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {config_path.name}",
            details={"path": str(config_path), "errors": e.error_count()},
        ) from e

    logger.debug("Configuration loaded", extra={"path": str(config_path)})
    return config

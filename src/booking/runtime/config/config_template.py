"""Loading ``config.yaml`` with environment placeholders filled in."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic_core import ValidationError

from src.booking.runtime.config.config_data import ConfigData
from src.booking.runtime.settings import EnvironmentVariables

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def substitute_env_vars(text: str) -> str:
    """
    Replace ``${...}`` placeholders with environment values.

    Supported forms:
    - ${NAME} - required, raises ValueError when unset
    - ${NAME:-fallback} - fallback used when unset
    - ${NAME:?reason} - required, reason included in the error
    """

    def resolve(match: re.Match) -> str:
        expr = match.group(1)
        if ":-" in expr:
            name, fallback = expr.split(":-", 1)
            return os.getenv(name, fallback)

        name, _, reason = expr.partition(":?")
        value = os.getenv(name)
        if value is None:
            detail = f": {reason}" if reason else " not set"
            raise ValueError(f"Required environment variable {name}{detail}")
        return value

    return _PLACEHOLDER.sub(resolve, text)


def apply_environment_overrides(env_mode: str) -> None:
    """Copy ``<ENV_MODE>_FOO`` variables onto ``FOO`` for the active environment."""
    prefix = f"{env_mode.upper()}_"
    overrides = {name: value for name, value in os.environ.items() if name.startswith(prefix)}
    if overrides:
        logger.info("Applying {} overrides: {}", env_mode, sorted(overrides))
    for name, value in overrides.items():
        os.environ[name[len(prefix):]] = value


def load_templated_yaml(file_path: Path) -> ConfigData:
    """
    Read a config file, fill its placeholders and validate it.

    Settings live under the top-level ``config`` key.

    Raises:
        ValueError: a required variable is missing, or the YAML or its
            values are invalid
        FileNotFoundError: ``file_path`` does not exist
    """
    content = Path(file_path).read_text()

    env_mode = EnvironmentVariables().app_environment
    logger.info("Loading configuration {} for environment {}", file_path, env_mode)
    apply_environment_overrides(env_mode)

    try:
        loaded = yaml.safe_load(substitute_env_vars(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e
    if not isinstance(loaded, dict):
        raise ValueError(f"Error parsing YAML: {file_path} holds no mapping")

    try:
        config = ConfigData(**(loaded.get("config") or {}))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    if config.app.environment != env_mode:
        logger.warning(
            "config.yaml declares environment '{}' but APP_ENVIRONMENT is '{}'",
            config.app.environment,
            env_mode,
        )
    return config


def load_config() -> ConfigData:
    """Load the configured YAML file, falling back to defaults when it is absent."""
    path = Path(EnvironmentVariables().config_file)
    if not path.exists():
        logger.warning("Configuration file {} not found; using defaults", path)
        return ConfigData()
    return load_templated_yaml(path)

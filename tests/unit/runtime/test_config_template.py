"""Unit tests for config_template module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from src.booking.runtime.config.config_data import ConfigData, DatabaseConfig
from src.booking.runtime.config.config_template import (
    apply_environment_overrides,
    load_config,
    load_templated_yaml,
    substitute_env_vars,
)

CONFIG_YAML = """
config:
  app:
    environment: ${APP_ENVIRONMENT:-development}
    port: ${HTTP_PORT:-8081}
  rpc:
    port: ${RPC_PORT:-50052}
  database:
    url: "postgresql://${DB_USER:-postgres}@${DB_HOST:-localhost}:${DB_PORT:-5432}/${DB_NAME:-booking}"
    password_env_var: DB_PASSWORD
  logging:
    level: ${LOG_LEVEL:-INFO}
"""


class TestSubstituteEnvVars:
    """Test cases for substitute_env_vars function."""

    def test_substitute_simple_env_var(self):
        """Test substitution of a simple environment variable."""
        with patch.dict(os.environ, {"TEST_VAR": "test_value"}):
            assert substitute_env_vars("${TEST_VAR}") == "test_value"

    def test_substitute_env_var_with_default(self):
        """Test substitution with default value when env var is not set."""
        with patch.dict(os.environ, {}, clear=True):
            assert substitute_env_vars("${MISSING_VAR:-default_value}") == "default_value"

    def test_substitute_env_var_with_empty_default(self):
        with patch.dict(os.environ, {}, clear=True):
            assert substitute_env_vars("file: ${LOG_FILE:-}") == "file: "

    def test_substitute_required_env_var_missing(self):
        """Test substitution fails when required env var is missing."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="Required environment variable MISSING_VAR not set"):
                substitute_env_vars("${MISSING_VAR}")

    def test_substitute_env_var_with_custom_error(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="DB_HOST: database host is required"):
                substitute_env_vars("${DB_HOST:?database host is required}")

    def test_text_without_placeholders_unchanged(self):
        assert substitute_env_vars("port: 50052") == "port: 50052"


class TestApplyEnvironmentOverrides:
    def test_prefixed_variables_copied(self):
        with patch.dict(os.environ, {"PRODUCTION_DB_HOST": "db.internal"}, clear=True):
            apply_environment_overrides("production")
            assert os.environ["DB_HOST"] == "db.internal"


class TestLoadTemplatedYaml:
    """Test loading config.yaml files."""

    def test_defaults(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(CONFIG_YAML)

        with patch.dict(os.environ, {}, clear=True):
            config = load_templated_yaml(config_file)

        assert config.app.port == 8081
        assert config.rpc.port == 50052
        assert config.database.url == "postgresql://postgres@localhost:5432/booking"
        assert config.database.is_postgres is True

    def test_environment_values(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(CONFIG_YAML)
        env = {
            "DB_HOST": "db",
            "DB_PORT": "6543",
            "DB_USER": "booker",
            "DB_NAME": "library",
            "DB_PASSWORD": "s3cret",
            "RPC_PORT": "6000",
            "LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env, clear=True):
            config = load_templated_yaml(config_file)
            connection_string = config.database.connection_string

        assert config.rpc.port == 6000
        assert config.logging.level == "DEBUG"
        assert connection_string == "postgresql://booker:s3cret@db:6543/library"

    def test_invalid_yaml(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("config: [unclosed")
        with pytest.raises(ValueError, match="Error parsing YAML"):
            load_templated_yaml(config_file)

    def test_invalid_values(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("config:\n  rpc:\n    port: not-a-port\n")
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_templated_yaml(config_file)

    def test_missing_file_falls_back_to_defaults(self, tmp_path: Path):
        with patch.dict(os.environ, {"BOOKING_CONFIG": str(tmp_path / "absent.yaml")}):
            assert load_config() == ConfigData()


class TestDatabaseConfig:
    def test_password_in_url_wins(self):
        with patch.dict(os.environ, {"DB_PASSWORD": "from-env"}):
            config = DatabaseConfig(url="postgresql://u:inline@h/db", password_env_var="DB_PASSWORD")
            assert config.password == "inline"

    def test_password_file(self, tmp_path: Path):
        secret = tmp_path / "db_password"
        secret.write_text("from-file\n")
        config = DatabaseConfig(url="postgresql://u@h/db", password_file=str(secret))
        assert config.connection_string == "postgresql://u:from-file@h/db"

    def test_sqlite_is_not_postgres(self):
        assert DatabaseConfig(url="sqlite:///books.db").is_postgres is False

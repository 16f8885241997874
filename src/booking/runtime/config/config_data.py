"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

import os
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field
from sqlalchemy.engine import make_url


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="plain", description="Log format")
    file: str | None = Field(default=None, description="Log file path (no file sink when empty)")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="postgresql://postgres@localhost:5432/booking",
        description="Database connection URL",
    )
    pool_size: int = Field(default=10, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    connect_timeout: int = Field(default=10, description="Connect timeout in seconds")
    password_env_var: str | None = Field(
        default=None,
        description="Environment variable name containing database password",
    )
    password_file: str | None = Field(
        default=None,
        description="Path to file containing database password",
    )

    @property
    def is_postgres(self) -> bool:
        return make_url(self.url).get_backend_name() == "postgresql"

    @computed_field
    @property
    def password(self) -> str | None:
        """Resolve the password: URL first, then secrets file, then env var."""
        url_password = make_url(self.url).password
        if url_password:
            return url_password
        if self.password_file:
            try:
                with open(self.password_file) as f:
                    return f.read().strip()
            except OSError as e:
                raise ValueError("Failed to read database password from file.") from e
        if self.password_env_var:
            password = os.getenv(self.password_env_var)
            if password:
                return password
            logger.warning(
                "Environment variable {} is not set; connecting without a password",
                self.password_env_var,
            )
        return None

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the database connection string with password if provided."""
        base_url = make_url(self.url)
        if base_url.password or not self.password:
            return base_url.render_as_string(hide_password=False)
        return base_url.set(password=self.password).render_as_string(hide_password=False)


class AppConfig(BaseModel):
    """HTTP gateway listener configuration."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="0.0.0.0", description="Gateway bind host")
    port: int = Field(default=8081, description="Gateway port")


class RpcConfig(BaseModel):
    """Binary RPC listener configuration."""

    host: str = Field(default="0.0.0.0", description="RPC bind host")
    port: int = Field(default=50052, description="RPC port")
    max_workers: int = Field(default=10, description="Thread pool size for RPC calls")
    grace_period: float = Field(
        default=5.0, description="Seconds in-flight calls get to finish on shutdown"
    )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="HTTP gateway configuration"
    )
    rpc: RpcConfig = Field(default_factory=RpcConfig, description="RPC configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )

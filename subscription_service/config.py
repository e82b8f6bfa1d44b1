from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from subscription_service.core.exceptions import ConfigError

DEFAULT_CONFIG_FILE = "config.yaml"

# YAML path -> settings alias
_YAML_KEYS: dict[tuple[str, str], str] = {
    ("database", "url"): "DATABASE_URL",
    ("server", "host"): "SERVER_HOST",
    ("server", "port"): "SERVER_PORT",
    ("log", "level"): "LOG_LEVEL",
    ("shutdown", "timeout"): "SHUTDOWN_TIMEOUT",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and config.yaml."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="Subscription Service API", alias="APP_NAME")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    database_url: str = Field(alias="DATABASE_URL")
    db_pool_size: int = Field(default=10, ge=1, le=100, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, ge=0, le=200, alias="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=30, ge=1, le=300, alias="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(default=1800, ge=60, alias="DB_POOL_RECYCLE")

    server_host: str = Field(default="0.0.0.0", alias="SERVER_HOST")
    server_port: int = Field(default=8080, ge=1, le=65535, alias="SERVER_PORT")
    shutdown_timeout: int = Field(default=10, ge=1, alias="SHUTDOWN_TIMEOUT")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("api_v1_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        """Ensure the API prefix starts with a slash and has no trailing slash."""
        normalized = value.strip()
        if not normalized.startswith("/"):
            raise ValueError("API_V1_PREFIX must start with '/'.")
        if len(normalized) > 1 and normalized.endswith("/"):
            normalized = normalized.rstrip("/")
        return normalized

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("DATABASE_URL must not be empty")
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = value.upper()
        if upper not in allowed:
            raise ValueError(f"Invalid LOG_LEVEL. Must be one of: {allowed}")
        return upper


def read_yaml_config(path: Path) -> dict[str, Any]:
    """Read config.yaml and flatten it into settings aliases.

    A missing file yields an empty mapping so that environment-only
    deployments keep working.
    """
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"failed to read {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    flattened: dict[str, Any] = {}
    for (section, key), alias in _YAML_KEYS.items():
        block = loaded.get(section)
        if isinstance(block, dict) and block.get(key) is not None:
            flattened[alias] = block[key]
    return flattened


def load_config(
    config_file: Optional[str] = None,
    env_file: Optional[str] = None,
) -> Settings:
    """
    Load configuration from the YAML file and environment variables.

    Priority: ENV vars > config.yaml > defaults

    Raises:
        ConfigError: if the file cannot be parsed or a setting is invalid
    """
    env_path = Path(env_file or ".env")
    if env_path.exists():
        load_dotenv(env_path)

    config_path = Path(config_file or os.getenv("CONFIG_FILE", DEFAULT_CONFIG_FILE))
    file_values = read_yaml_config(config_path)
    # Init kwargs outrank the environment in pydantic-settings, so drop
    # anything the environment already provides.
    overrides = {alias: value for alias, value in file_values.items() if alias not in os.environ}

    try:
        return Settings(**overrides)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or initialize the global settings singleton."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def reset_settings() -> None:
    """Reset settings to force re-initialization (for testing)."""
    global _settings
    _settings = None

from __future__ import annotations

import os

import pytest

from subscription_service.config import Settings, load_config, read_yaml_config
from subscription_service.core.exceptions import ConfigError

CONFIG_YAML = """
database:
  url: postgresql://file-user@db:5432/subs
server:
  port: 9000
log:
  level: debug
"""


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ("DATABASE_URL", "SERVER_PORT", "SERVER_HOST", "LOG_LEVEL", "SHUTDOWN_TIMEOUT", "CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write_config(directory, text=CONFIG_YAML):
    path = directory / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_yaml_values_are_flattened(clean_env):
    values = read_yaml_config(write_config(clean_env))
    assert values == {
        "DATABASE_URL": "postgresql://file-user@db:5432/subs",
        "SERVER_PORT": 9000,
        "LOG_LEVEL": "debug",
    }


def test_missing_yaml_is_empty(clean_env):
    assert read_yaml_config(clean_env / "absent.yaml") == {}


def test_load_config_from_yaml(clean_env):
    write_config(clean_env)
    settings = load_config()
    assert settings.database_url == "postgresql://file-user@db:5432/subs"
    assert settings.server_port == 9000
    assert settings.log_level == "DEBUG"
    assert settings.shutdown_timeout == 10
    assert settings.api_v1_prefix == "/api/v1"


def test_environment_overrides_yaml(clean_env, monkeypatch):
    write_config(clean_env)
    monkeypatch.setenv("DATABASE_URL", "postgresql://env-user@db:5432/subs")
    monkeypatch.setenv("SERVER_PORT", "8181")
    settings = load_config()
    assert settings.database_url == "postgresql://env-user@db:5432/subs"
    assert settings.server_port == 8181


def test_dotenv_file_is_loaded(clean_env):
    (clean_env / ".env").write_text("DATABASE_URL=sqlite:///from-dotenv.db\n", encoding="utf-8")
    try:
        settings = load_config()
        assert settings.database_url == "sqlite:///from-dotenv.db"
    finally:
        os.environ.pop("DATABASE_URL", None)


def test_config_file_env_var(clean_env, monkeypatch):
    custom = clean_env / "custom.yaml"
    custom.write_text("database:\n  url: sqlite:///custom.db\n", encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(custom))
    assert load_config().database_url == "sqlite:///custom.db"


def test_missing_database_url_is_config_error(clean_env):
    with pytest.raises(ConfigError):
        load_config()


def test_invalid_port_is_config_error(clean_env):
    write_config(clean_env, "database:\n  url: sqlite:///x.db\nserver:\n  port: 70000\n")
    with pytest.raises(ConfigError):
        load_config()


def test_unparsable_yaml_is_config_error(clean_env):
    write_config(clean_env, "database: [unclosed\n")
    with pytest.raises(ConfigError):
        load_config()


def test_prefix_is_normalized():
    settings = Settings(DATABASE_URL="sqlite://", API_V1_PREFIX="/api/v1/")
    assert settings.api_v1_prefix == "/api/v1"


def test_prefix_must_start_with_slash():
    with pytest.raises(ValueError):
        Settings(DATABASE_URL="sqlite://", API_V1_PREFIX="api")


def test_unknown_log_level_rejected():
    with pytest.raises(ValueError):
        Settings(DATABASE_URL="sqlite://", LOG_LEVEL="chatty")

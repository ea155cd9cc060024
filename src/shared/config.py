"""Configuration management for the MCP Tool Runner.

Supports YAML configuration files and environment variable overrides.
Configuration is loaded once and cached.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.schema import UnknownTypePolicy


def default_data_dir() -> Path:
    """Per-application local data directory."""
    base = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(base) / "mcp-tool-runner"


class BackendSettings(BaseSettings):
    """Settings for talking to MCP binaries over stdio."""
    list_timeout_seconds: float = Field(default=30.0, gt=0)
    call_timeout_seconds: float = Field(default=60.0, gt=0)
    make_executable: bool = Field(
        default=True,
        description="Set the executable bits on the binary before spawning it"
    )

    model_config = SettingsConfigDict(
        env_prefix="MCP_RUNNER_BACKEND_",
        env_file=".env",
        extra="ignore"
    )


class StorageSettings(BaseSettings):
    """Where uploaded binaries are written."""
    data_dir: Path = Field(default_factory=default_data_dir)

    model_config = SettingsConfigDict(
        env_prefix="MCP_RUNNER_STORAGE_",
        env_file=".env",
        extra="ignore"
    )


class FormSettings(BaseSettings):
    """Form derivation settings."""
    unknown_type_policy: UnknownTypePolicy = Field(
        default=UnknownTypePolicy.TEXT,
        description="text: edit unknown types as strings; reject: disable the tool form"
    )

    model_config = SettingsConfigDict(
        env_prefix="MCP_RUNNER_FORM_",
        env_file=".env",
        extra="ignore"
    )


class ApiSettings(BaseSettings):
    """Presentation API settings."""
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8010)

    model_config = SettingsConfigDict(
        env_prefix="MCP_RUNNER_API_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Component settings
    backend: BackendSettings = Field(default_factory=BackendSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    form: FormSettings = Field(default_factory=FormSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    model_config = SettingsConfigDict(
        env_prefix="MCP_RUNNER_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        data = load_yaml_config(path)
        return cls(**data)


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("MCP_RUNNER_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)

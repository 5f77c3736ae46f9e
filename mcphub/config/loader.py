"""Configuration loading from environment and YAML files."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Server info used by in-process servers that don't set their own
    server_name: str = "mcphub"
    server_version: str = "1.0.0"

    # Protocol version offered when the client asks for one we don't speak
    protocol_version: str = "2025-06-18"

    # YAML file declaring in-memory servers
    servers_config_path: str = ""

    model_config = SettingsConfigDict(
        env_prefix="MCPHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_servers_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load in-memory server definitions from a YAML file.

    The file looks like::

        servers:
          docs:
            version: "1.2.0"
            resources:
              - uri: "docs://readme"
                name: readme
                mimeType: text/markdown
                text: "# Hello"
            prompts:
              - name: summarize
                description: Summarize a topic
                template: "Summarize {topic} in {words} words"

    Args:
        config_path: Path to the config file. If None, uses the
            ``servers_config_path`` setting, then ``config/servers.yaml``.

    Returns:
        Dictionary with configuration data; ``{"servers": {}}`` when no file exists.
    """
    if config_path is None:
        configured = get_settings().servers_config_path
        config_path = Path(configured) if configured else Path("config/servers.yaml")

    config_path = Path(config_path)
    if not config_path.exists():
        return {"servers": {}}

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    config.setdefault("servers", {})
    return config


def get_server_config(server_id: str, config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get configuration for a specific server."""
    if config is None:
        config = load_servers_config()
    return (config.get("servers") or {}).get(server_id) or {}

"""Configuration loading and management."""

from mcphub.config.loader import Settings, get_settings, load_servers_config, get_server_config

__all__ = ["Settings", "get_settings", "load_servers_config", "get_server_config"]

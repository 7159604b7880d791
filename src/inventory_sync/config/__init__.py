"""Configuration module."""

from inventory_sync.config.configuration import (
    AppConfig,
    ConfigurationError,
    DevAuthConfig,
    InventoryConfig,
    LoggingConfig,
    SupabaseConfig,
    get_config,
    get_environment,
    load_config,
    reset_config,
)

__all__ = [
    "AppConfig",
    "ConfigurationError",
    "DevAuthConfig",
    "InventoryConfig",
    "LoggingConfig",
    "SupabaseConfig",
    "get_config",
    "get_environment",
    "load_config",
    "reset_config",
]

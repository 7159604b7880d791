"""Configuration module for Inventory Sync.

Loads settings from environment-specific config files:
- APP_ENV=dev  → config_dev.yaml (development build, dev auto-login allowed)
- APP_ENV=test → config_test.yaml (staging Supabase project)
- Default      → config.yaml

Supabase keys and dev credentials are loaded from .env file.
Fails fast with clear error messages if required configuration is missing.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_project_root() -> Path:
    """Get the project root directory (where config.yaml lives)."""
    # Navigate from src/inventory_sync/config/ up to project root
    return Path(__file__).parent.parent.parent.parent


def _get_config_filename() -> str:
    """Get config filename based on APP_ENV environment variable.

    Returns:
        Config filename:
        - APP_ENV=dev  → config_dev.yaml
        - APP_ENV=test → config_test.yaml
        - Default      → config.yaml
    """
    app_env = os.environ.get("APP_ENV", "").lower()

    if app_env == "dev":
        return "config_dev.yaml"
    elif app_env == "test":
        return "config_test.yaml"
    else:
        return "config.yaml"


def _load_yaml_config() -> dict:
    """Load configuration from environment-specific config file."""
    config_filename = _get_config_filename()
    config_path = _get_project_root() / config_filename

    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}. "
            f"Set APP_ENV to 'dev' or 'test', or create {config_filename}."
        )

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def _get_required_env(key: str) -> str:
    """Get required environment variable or raise ConfigurationError."""
    value = os.environ.get(key)
    if not value:
        raise ConfigurationError(
            f"Required environment variable '{key}' is not set. "
            f"Please add it to your .env file."
        )
    return value


def _get_optional_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get optional environment variable with default."""
    return os.environ.get(key, default)


@dataclass(frozen=True)
class SupabaseConfig:
    """Supabase project configuration."""
    url: str
    anon_key: str
    schema: str
    products_table: str
    realtime_channel: str


@dataclass(frozen=True)
class InventoryConfig:
    """Inventory behaviour configuration."""
    default_low_stock_threshold: int


@dataclass(frozen=True)
class DevAuthConfig:
    """Development-only auto-login. Never enabled outside APP_ENV=dev."""
    auto_login: bool
    email: Optional[str]
    password: Optional[str]


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""
    level: str


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration container."""
    supabase: SupabaseConfig
    inventory: InventoryConfig
    dev_auth: DevAuthConfig
    logging: LoggingConfig


def load_config() -> AppConfig:
    """
    Load and validate all application configuration.

    Loads from the APP_ENV-selected YAML file for non-sensitive settings and
    .env for the Supabase key and dev credentials.

    Returns:
        AppConfig: Validated application configuration.

    Raises:
        ConfigurationError: If required configuration is missing, or dev
            auto-login is requested outside a development build.
    """
    # Load environment variables from .env file
    load_dotenv()

    # Load YAML configuration
    yaml_config = _load_yaml_config()

    # Build Supabase config
    supabase_section = yaml_config.get("supabase", {})

    supabase_config = SupabaseConfig(
        url=supabase_section.get("url") or _get_required_env("SUPABASE_URL"),
        anon_key=_get_required_env("SUPABASE_ANON_KEY"),
        schema=supabase_section.get("schema", "public"),
        products_table=supabase_section.get("products_table", "products"),
        realtime_channel=supabase_section.get("realtime_channel", "public:products"),
    )

    # Build Inventory config
    inventory_section = yaml_config.get("inventory", {})
    threshold = int(inventory_section.get("default_low_stock_threshold", 5))
    if threshold < 0:
        raise ConfigurationError(
            f"inventory.default_low_stock_threshold must be >= 0, got {threshold}"
        )

    inventory_config = InventoryConfig(default_low_stock_threshold=threshold)

    # Build DevAuth config
    dev_auth_section = yaml_config.get("dev_auth", {})
    auto_login = bool(dev_auth_section.get("auto_login", False))

    if auto_login and get_environment() != "dev":
        raise ConfigurationError(
            "dev_auth.auto_login is only allowed when APP_ENV=dev. "
            "Remove it from the configuration of this environment."
        )

    dev_auth_config = DevAuthConfig(
        auto_login=auto_login,
        email=_get_required_env("DEV_AUTH_EMAIL") if auto_login else _get_optional_env("DEV_AUTH_EMAIL"),
        password=_get_required_env("DEV_AUTH_PASSWORD") if auto_login else _get_optional_env("DEV_AUTH_PASSWORD"),
    )

    # Build Logging config
    logging_section = yaml_config.get("logging", {})

    logging_config = LoggingConfig(
        level=logging_section.get("level", "INFO"),
    )

    return AppConfig(
        supabase=supabase_config,
        inventory=inventory_config,
        dev_auth=dev_auth_config,
        logging=logging_config,
    )


# Module-level singleton for convenience
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the application configuration singleton.

    Lazy-loads configuration on first access.
    Config file is selected based on APP_ENV environment variable.

    Returns:
        AppConfig: Application configuration.

    Raises:
        ConfigurationError: If required configuration is missing.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_environment() -> str:
    """Get current environment name.

    Returns:
        'dev', 'test', or 'default' based on APP_ENV.
    """
    app_env = os.environ.get("APP_ENV", "").lower()
    return app_env if app_env in ("dev", "test") else "default"


def reset_config() -> None:
    """Reset the config singleton. Useful for testing."""
    global _config
    _config = None

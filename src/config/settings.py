"""Application settings with Pydantic Settings validation.

Secrets (database password, API keys) are loaded from .env file.
Non-sensitive configuration is loaded from config/main.yaml and config/*.yaml.
All configs are merged and validated against JSON schemas when present.
"""

import json
from pathlib import Path
from typing import Any, Final, Literal, cast

import yaml
from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import Field, SecretStr, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.channels import default_telegram_channels, find_channel
from src.config.logging_config import get_logger
from src.domain.exceptions import ConfigurationError
from src.domain.models import TelegramChannelConfig

POSTGRES_MIN_CONNECTIONS_DEFAULT: Final[int] = 1
POSTGRES_MAX_CONNECTIONS_DEFAULT: Final[int] = 5
POSTGRES_STATEMENT_TIMEOUT_MS_DEFAULT: Final[int] = 10_000
POSTGRES_CONNECT_TIMEOUT_SECONDS_DEFAULT: Final[int] = 10
POSTGRES_APPLICATION_NAME_DEFAULT: Final[str] = "crypto_calendar"

HTTP_TIMEOUT_SECONDS_DEFAULT: Final[float] = 20.0
HTTP_USER_AGENT_DEFAULT: Final[str] = "Mozilla/5.0 (cron)"

BINANCE_MAX_ITEMS_DEFAULT: Final[int] = 25
BINANCE_CATALOG_NAME_DEFAULT: Final[str] = "latest activities"
EVENT_RETENTION_DAYS_DEFAULT: Final[int] = 45

MEXC_API_BASE_URL_DEFAULT: Final[str] = "https://api.mexc.com"
PRICE_REACTION_LOOKBACK_DAYS_DEFAULT: Final[int] = 1
PRICE_REACTION_LOOKAHEAD_DAYS_DEFAULT: Final[int] = 7
ADMIN_NOTIFY_MAX_PER_RUN_DEFAULT: Final[int] = 20

logger = cast(Any, get_logger(__name__))


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge into base (takes precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_schema(schema_name: str) -> dict[str, Any]:
    """Load JSON Schema from config/schemas/.

    Args:
        schema_name: Schema name without extension (e.g., "main")

    Returns:
        JSON Schema dictionary or empty dict if not found
    """
    schema_path = Path("config/schemas") / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return {}

    try:
        with open(schema_path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(
            "config_schema_load_failed",
            schema=schema_name,
            error=str(e),
        )
        return {}


def validate_config_section(
    config: dict[str, Any], schema_name: str, file_path: str = ""
) -> None:
    """Validate config section against JSON Schema.

    Args:
        config: Configuration dictionary to validate
        schema_name: Name of schema to validate against
        file_path: Optional file path for error messages

    Raises:
        ConfigurationError: If validation fails
    """
    schema = load_schema(schema_name)
    if not schema:
        return

    try:
        validate(instance=config, schema=schema)
        logger.debug("config_validation_succeeded", schema=schema_name)
    except JSONSchemaValidationError as e:
        error_msg = f"Config validation failed for {schema_name}"
        if file_path:
            error_msg += f" (file: {file_path})"
        error_msg += f": {e.message}"
        raise ConfigurationError(error_msg) from e


def _load_yaml_file(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning("config_file_load_failed", path=str(path), error=str(e))
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return loaded


def load_all_configs() -> dict[str, Any]:
    """Load and merge all YAML configs from config/ directory.

    Loading order (later overrides earlier):
    1. config/main.yaml
    2. All other config/*.yaml files (sorted alphabetically)

    Each file is validated against config/schemas/<stem>.schema.json if present.

    Returns:
        Merged configuration dictionary
    """
    merged_config: dict[str, Any] = {}
    file_count = 0

    main_path = Path("config/main.yaml")
    if main_path.exists():
        main_config = _load_yaml_file(main_path)
        validate_config_section(main_config, "main", str(main_path))
        merged_config = main_config
        file_count += 1
        logger.debug("config_file_loaded", path=str(main_path), schema="main")

    config_dir = Path("config")
    if config_dir.is_dir():
        yaml_files = sorted(
            f for f in config_dir.glob("*.yaml") if f.name != "main.yaml"
        )
        for yaml_file in yaml_files:
            file_config = _load_yaml_file(yaml_file)
            validate_config_section(file_config, yaml_file.stem, str(yaml_file))
            merged_config = deep_merge(merged_config, file_config)
            file_count += 1
            logger.debug(
                "config_file_loaded", path=str(yaml_file), schema=yaml_file.stem
            )

    logger.debug("config_load_complete", file_count=file_count)
    return merged_config


def parse_telegram_channels(raw_channels: list[Any]) -> list[TelegramChannelConfig]:
    """Build channel configs from YAML entries.

    Raises:
        ConfigurationError: On unknown source_kind or malformed entry
    """
    channels: list[TelegramChannelConfig] = []
    for entry in raw_channels:
        if not isinstance(entry, dict) or not entry.get("username"):
            raise ConfigurationError(f"Telegram channel entry needs a username: {entry!r}")
        try:
            channels.append(TelegramChannelConfig(**entry))
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid telegram channel {entry.get('username')!r}: {e}"
            ) from e
    return channels


class Settings(BaseSettings):
    """Application settings.

    Secrets are loaded from .env file.
    Non-sensitive config is loaded from config/*.yaml with fallback to defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === SECRETS (from .env) ===

    postgres_password: SecretStr | None = Field(
        default=None, description="PostgreSQL password (from .env, optional)"
    )
    coingecko_api_key: SecretStr | None = Field(
        default=None, description="CoinGecko demo API key (from .env, optional)"
    )
    telegram_bot_token: SecretStr | None = Field(
        default=None, description="Telegram bot token for admin notifications (from .env)"
    )

    def __init__(self, **data: Any):
        """Initialize settings with auto-loaded configs from all YAML files."""
        config = load_all_configs()

        super().__init__(**data)
        self._apply_yaml_defaults(config)

    def _apply_yaml_defaults(self, config: dict[str, Any]) -> None:
        """Apply YAML-sourced defaults without overriding env-provided values."""

        fields_from_env = set(self.model_fields_set)

        def _assign(field_name: str, value: Any) -> None:
            if value is None:
                return
            if field_name in fields_from_env:
                return

            object.__setattr__(self, field_name, value)
            self.model_fields_set.add(field_name)

        database_config = config.get("database") or {}
        _assign("database_type", database_config.get("type"))
        _assign("db_path", database_config.get("path"))

        postgres_config = database_config.get("postgres") or {}
        _assign("postgres_host", postgres_config.get("host"))
        _assign("postgres_port", postgres_config.get("port"))
        _assign("postgres_database", postgres_config.get("database"))
        _assign("postgres_user", postgres_config.get("user"))

        http_config = config.get("http") or {}
        _assign("http_timeout_seconds", http_config.get("timeout_seconds"))
        _assign("http_user_agent", http_config.get("user_agent"))

        binance_config = config.get("binance") or {}
        _assign("binance_max_items", binance_config.get("max_items"))
        _assign("binance_title_keywords", binance_config.get("title_keywords"))
        _assign("binance_catalog_name", binance_config.get("catalog_name"))

        coingecko_config = config.get("coingecko") or {}
        _assign("coingecko_default_chain", coingecko_config.get("default_chain"))

        price_reaction_config = config.get("price_reaction") or {}
        _assign("mexc_api_base_url", price_reaction_config.get("mexc_base_url"))
        _assign(
            "price_reaction_lookback_days", price_reaction_config.get("lookback_days")
        )
        _assign(
            "price_reaction_lookahead_days", price_reaction_config.get("lookahead_days")
        )

        admin_notify_config = config.get("admin_notify") or {}
        chat_id = admin_notify_config.get("chat_id")
        _assign("telegram_admin_chat_id", None if chat_id is None else str(chat_id))
        _assign("admin_notify_max_per_run", admin_notify_config.get("max_per_run"))

        retention_config = config.get("retention") or {}
        _assign("event_retention_days", retention_config.get("days"))

        logging_config = config.get("logging") or {}
        _assign("log_level", logging_config.get("level"))
        _assign("log_json", logging_config.get("json"))

        telegram_channels_config = config.get("telegram_channels")
        if isinstance(telegram_channels_config, list):
            _assign(
                "telegram_channels",
                parse_telegram_channels(telegram_channels_config),
            )

    # Database configuration
    database_type: Literal["sqlite", "postgres"] = Field(
        default="sqlite", description="Database type: sqlite or postgres"
    )
    db_path: str = Field(
        default="data/crypto_calendar.db", description="SQLite database path"
    )
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_port: int = Field(default=5432, description="PostgreSQL port")
    postgres_database: str = Field(
        default="crypto_calendar", description="PostgreSQL database name"
    )
    postgres_user: str = Field(default="postgres", description="PostgreSQL user")
    postgres_min_connections: int = Field(
        default=POSTGRES_MIN_CONNECTIONS_DEFAULT,
        description="Minimum number of connections in PostgreSQL pool",
    )
    postgres_max_connections: int = Field(
        default=POSTGRES_MAX_CONNECTIONS_DEFAULT,
        description="Maximum number of connections in PostgreSQL pool",
    )
    postgres_statement_timeout_ms: int = Field(
        default=POSTGRES_STATEMENT_TIMEOUT_MS_DEFAULT,
        description="PostgreSQL statement timeout in milliseconds",
    )
    postgres_connect_timeout_seconds: int = Field(
        default=POSTGRES_CONNECT_TIMEOUT_SECONDS_DEFAULT,
        description="PostgreSQL connection timeout in seconds",
    )
    postgres_application_name: str = Field(
        default=POSTGRES_APPLICATION_NAME_DEFAULT,
        description="Application name for PostgreSQL connections",
    )
    postgres_ssl_mode: str | None = Field(
        default=None,
        description="Optional SSL mode for PostgreSQL connections (e.g., require)",
    )

    # HTTP configuration
    http_timeout_seconds: float = Field(
        default=HTTP_TIMEOUT_SECONDS_DEFAULT,
        gt=0,
        description="Timeout for outbound HTTP requests (seconds)",
    )
    http_user_agent: str = Field(
        default=HTTP_USER_AGENT_DEFAULT,
        description="User-Agent header sent to scraped sites",
    )

    # Telegram configuration
    telegram_channels: list[TelegramChannelConfig] = Field(
        default_factory=default_telegram_channels,
        description="Telegram channels to scrape (loaded from config/*.yaml)",
    )

    # Binance announcements configuration
    binance_max_items: int = Field(
        default=BINANCE_MAX_ITEMS_DEFAULT,
        ge=1,
        description="Maximum announcements inspected per run",
    )
    binance_title_keywords: list[str] = Field(
        default_factory=lambda: ["Trading Competition"],
        description="Announcement titles must contain one of these keywords",
    )
    binance_catalog_name: str = Field(
        default=BINANCE_CATALOG_NAME_DEFAULT,
        description="CMS catalog holding tournament announcements",
    )

    # Coin info resolution
    coingecko_default_chain: str = Field(
        default="ethereum",
        description="Asset platform used when an event has no coin_chain",
    )

    # Price reaction capture
    mexc_api_base_url: str = Field(
        default=MEXC_API_BASE_URL_DEFAULT, description="MEXC spot REST API base URL"
    )
    price_reaction_lookback_days: int = Field(
        default=PRICE_REACTION_LOOKBACK_DAYS_DEFAULT,
        ge=0,
        description="Track approved events that started up to this many days ago",
    )
    price_reaction_lookahead_days: int = Field(
        default=PRICE_REACTION_LOOKAHEAD_DAYS_DEFAULT,
        ge=0,
        description="Track approved events starting within this many days",
    )

    # Admin notifications
    telegram_admin_chat_id: str | None = Field(
        default=None, description="Chat receiving new auto-draft notifications"
    )
    admin_notify_max_per_run: int = Field(
        default=ADMIN_NOTIFY_MAX_PER_RUN_DEFAULT,
        ge=1,
        description="Maximum notifications sent per run",
    )

    # Retention
    event_retention_days: int = Field(
        default=EVENT_RETENTION_DAYS_DEFAULT,
        ge=1,
        description="Events starting earlier than this many days ago are deleted",
    )

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("binance_title_keywords", mode="before")
    @classmethod
    def validate_title_keywords(cls, v: Any) -> Any:
        """Accept a single keyword string as a one-element list."""
        if isinstance(v, str):
            return [v]
        return v

    def get_enabled_telegram_channels(self) -> list[TelegramChannelConfig]:
        """Channels with enabled=True, in configured order."""
        return [channel for channel in self.telegram_channels if channel.enabled]

    def get_telegram_channel_config(
        self, username: str
    ) -> TelegramChannelConfig | None:
        """Get configuration for a specific Telegram channel.

        Args:
            username: Channel username (with or without @)

        Returns:
            Channel config or None if not found
        """
        return find_channel(self.telegram_channels, username)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

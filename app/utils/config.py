"""
Configuration management for the PNG relay.

Uses pydantic-settings to load configuration from environment variables
and .env files.
"""

from pathlib import Path

from loguru import logger
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.utils.errors import ConfigurationError

REQUIRED_SETTINGS = ("discord_token", "channel_id", "watch_path")
SECRET_SETTINGS = {"discord_token"}


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Discord Configuration
    discord_token: SecretStr = SecretStr("")
    channel_id: str = ""

    # Watch Configuration
    watch_path: str = ""
    relay_existing_files: bool = False

    # Logging Configuration
    log_level: str = "INFO"
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def effective_log_level(self) -> str:
        """Log level after applying the debug switch."""
        return "DEBUG" if self.debug else self.log_level.upper()

    def get_channel_id(self) -> int:
        """Channel ID as the integer Discord expects."""
        return int(self.channel_id.strip())

    def get_watch_path(self) -> Path:
        """Watch root with user home expanded."""
        return Path(self.watch_path.strip()).expanduser()


def _raw_value(settings: Settings, name: str) -> str:
    value = getattr(settings, name)
    if isinstance(value, SecretStr):
        return value.get_secret_value().strip()
    return str(value).strip()


def validate_settings(settings: Settings) -> Settings:
    """
    Check that every required setting is present and non-empty.

    Args:
        settings: Settings to check

    Returns:
        The same settings instance

    Raises:
        ConfigurationError: If any required value is missing
    """
    missing = []

    for name in REQUIRED_SETTINGS:
        env_name = name.upper()
        value = _raw_value(settings, name)

        if not value:
            missing.append(env_name)
            continue

        shown = "[HIDDEN]" if name in SECRET_SETTINGS else value
        logger.debug(f"{env_name} is set to: {shown}")

    if missing:
        raise ConfigurationError.for_missing(missing)

    if not settings.channel_id.strip().isdigit():
        raise ConfigurationError(
            f"CHANNEL_ID must be a numeric channel id, got: {settings.channel_id!r}"
        )

    return settings


def read_settings(**overrides) -> Settings:
    """
    Build settings from the environment without checking required values.

    Keyword overrides take precedence over the environment, which is how
    tests inject values.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]).upper() for err in e.errors() if err["loc"]})
        raise ConfigurationError(f"Invalid configuration for: {', '.join(fields)}") from e


def load_settings(**overrides) -> Settings:
    """Build and validate settings."""
    return validate_settings(read_settings(**overrides))


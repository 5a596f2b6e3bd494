"""
Engine configuration and settings management.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

STRATEGY_NAMES = ("local_wins", "remote_wins", "newer_wins", "merge")


class SyncSettings(BaseSettings):
    """Sync scheduling and conflict resolution settings."""

    interval_seconds: float = Field(
        30.0, description="Seconds between automatic sync checks"
    )
    strategy: str = Field(
        "newer_wins", description="Default conflict resolution strategy"
    )
    clear_pending_on_failure: bool = Field(
        False,
        description="Reset the pending change counter even when a pass fails",
    )
    misfire_grace_seconds: int = Field(
        10, description="Grace time for a late timer tick in seconds"
    )

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    @field_validator("interval_seconds")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Ensure the timer period is positive."""
        if v <= 0:
            raise ValueError("Sync interval must be positive")
        return v

    @field_validator("strategy")
    @classmethod
    def validate_strategy(cls, v: str) -> str:
        """Normalize and check the strategy name."""
        normalized = v.strip().lower()
        if normalized not in STRATEGY_NAMES:
            raise ValueError(
                f"Unknown strategy '{v}', expected one of {', '.join(STRATEGY_NAMES)}"
            )
        return normalized


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    level: str = Field("INFO", description="Logging level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format"
    )
    json_logs: bool = Field(False, description="Use JSON logging format")

    model_config = SettingsConfigDict(env_prefix="LOGGING_")


class Settings(BaseSettings):
    """Main settings class combining all configuration sections."""

    sync: SyncSettings = Field(default_factory=lambda: SyncSettings())  # type: ignore[call-arg]
    logging: LoggingSettings = Field(default_factory=lambda: LoggingSettings())  # type: ignore[call-arg]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Engine settings
    """
    return Settings()

"""
DailyPal Configuration System
=============================

Simple configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

import os
from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class IngestionSettings(BaseModel):
    """Ingestion pipeline configuration."""
    worker_count: int = Field(default=5, ge=1, le=64, description="Concurrent feed workers")
    queue_size: int = Field(default=100, ge=1, le=10000, description="Bounded work queue capacity")
    default_language: str = Field(default="tr", min_length=1, description="Language used when neither channel nor URL provides one")
    source_file: str = Field(default="rss_feeds.json", description="Default source list document for import")

    @field_validator('default_language')
    @classmethod
    def validate_language(cls, v):
        """Normalize fallback language tag."""
        v = v.strip()
        if not v:
            raise ValueError("default_language cannot be blank")
        return v


class LimitsSettings(BaseModel):
    """Network limits."""
    request_timeout: Optional[float] = Field(default=30, gt=0, le=300, description="Feed request timeout in seconds (None uses the transport default)")


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/dailypal.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=64, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/dailypal.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class DailyPalSettings(BaseSettings):
    """Main application settings."""

    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Application metadata
    app_name: str = Field(default="DailyPal", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "DAILYPAL_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except Exception as e:
                errors.append(f"Invalid log file path: {e}")

        if self.database.pool_size < self.ingestion.worker_count:
            errors.append(
                f"database.pool_size ({self.database.pool_size}) must be at least "
                f"ingestion.worker_count ({self.ingestion.worker_count})"
            )

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def is_production_mode(self) -> bool:
        """Check if running in production mode."""
        return not self.debug and os.getenv("ENV", "development").lower() == "production"

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> DailyPalSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = DailyPalSettings()
        settings.validate_configuration()
        return settings

    except Exception as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        )


# Global settings instance
_settings: Optional[DailyPalSettings] = None


def get_settings(reload: bool = False) -> DailyPalSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings

"""
Settings Module for Ping Monitor

Configuration management using Pydantic Settings.
Supports environment variables, .env files, and runtime configuration.
Includes validation, type checking, and sensible defaults.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.constants import Defaults, Limits, TransportType


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )


class MonitoringSettings(BaseSettingsConfig):
    """
    Monitoring Engine Configuration Settings

    Controls the probe interval, per-probe timeout, transport selection
    and the size of the buffers handed to subscribers.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        extra="ignore"
    )

    # Probe cadence
    ping_interval_ms: int = Field(
        default=Defaults.PING_INTERVAL_MS,
        ge=Limits.MIN_PING_INTERVAL_MS,
        le=Limits.MAX_PING_INTERVAL_MS,
        description="Delay between two probe ticks in milliseconds"
    )
    timeout_ms: int = Field(
        default=Defaults.TIMEOUT_MS,
        ge=Limits.MIN_TIMEOUT_MS,
        le=Limits.MAX_TIMEOUT_MS,
        description="Per-probe timeout in milliseconds"
    )

    # Transport
    transport: TransportType = Field(
        default=TransportType.ICMP,
        description="Probe transport: icmp (system ping) or tcp (connect)"
    )
    tcp_port: int = Field(
        default=Defaults.TCP_PORT,
        ge=1,
        le=65535,
        description="Port used by the tcp transport"
    )
    resolve_hostnames: bool = Field(
        default=False,
        description="Resolve hostnames through DNS before probing"
    )

    # Buffers
    max_history_size: int = Field(
        default=Defaults.MAX_HISTORY_SIZE,
        ge=Limits.MIN_HISTORY_SIZE,
        le=Limits.MAX_HISTORY_SIZE,
        description="Recent outcomes kept per target for charting"
    )
    subscriber_queue_size: int = Field(
        default=Defaults.SUBSCRIBER_QUEUE_SIZE,
        ge=1,
        le=100_000,
        description="Pending events buffered per subscriber"
    )

    # Lifecycle
    autostart: bool = Field(
        default=True,
        description="Start probing as soon as the application is up"
    )
    seed_default_targets: bool = Field(
        default=True,
        description=(
            "Populate the registry with DEFAULT_TARGETS (1.1.1.1, 8.8.8.8, enabled) "
            "when no stored config is usable; adding either address again is a duplicate"
        )
    )

    @field_validator("transport", mode="before")
    @classmethod
    def normalize_transport(cls, v: Any) -> Any:
        """Accept transport names in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


class StorageSettings(BaseSettingsConfig):
    """
    Storage Configuration Settings

    Locations of the probe log directory and the persisted
    application config.
    """

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Base directory for application data"
    )
    log_dir: Path = Field(
        default=Path("data/logs"),
        description="Directory holding the daily probe log files"
    )
    config_file: Path = Field(
        default=Path("data/config.json"),
        description="Persisted application configuration"
    )


class LoggingSettings(BaseSettingsConfig):
    """
    Logging Configuration Settings

    Diagnostic logging for the application itself (not the probe log).
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore"
    )

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum logging level"
    )

    # Console logging
    console_enabled: bool = Field(
        default=True,
        description="Enable console logging"
    )
    colorize: bool = Field(
        default=True,
        description="Enable colored console output"
    )

    # File logging
    file_enabled: bool = Field(
        default=True,
        description="Enable file logging"
    )
    file_path: Path = Field(
        default=Path("logs/ping_monitor.log"),
        description="Log file path"
    )
    file_rotation: str = Field(
        default="10 MB",
        description="Log rotation size (e.g., '10 MB', '1 day')"
    )
    file_retention: str = Field(
        default="14 days",
        description="Log retention period"
    )
    error_file_enabled: bool = Field(
        default=True,
        description="Enable separate error log file"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept level names in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v


class ApiSettings(BaseSettingsConfig):
    """
    Control Server Settings

    HTTP / WebSocket surface consumed by the dashboard.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Serve the control API"
    )
    host: str = Field(
        default="127.0.0.1",
        description="Bind address"
    )
    port: int = Field(
        default=8765,
        ge=1,
        le=65535,
        description="Bind port"
    )


class Settings(BaseSettingsConfig):
    """
    Main Settings Class

    Aggregates all settings sections and provides the main
    configuration interface for the application.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    app_name: str = Field(
        default="Ping Monitor",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # Nested settings
    monitoring: MonitoringSettings = Field(
        default_factory=MonitoringSettings
    )
    storage: StorageSettings = Field(
        default_factory=StorageSettings
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings
    )
    api: ApiSettings = Field(
        default_factory=ApiSettings
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING

    @model_validator(mode="after")
    def configure_for_environment(self) -> "Settings":
        """Apply environment-specific configuration."""
        if self.is_testing:
            # Tests drive the engine directly
            self.monitoring.autostart = False
            self.logging.file_enabled = False
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a JSON-friendly dictionary."""
        return self.model_dump(mode="json")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure a single settings instance
    is used throughout the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()

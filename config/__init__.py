"""
Configuration Package for Ping Monitor

This package contains all configuration-related modules including:
- Settings management with environment variable support
- Constants and enums used throughout the application
"""

from config.settings import (
    Settings,
    MonitoringSettings,
    StorageSettings,
    LoggingSettings,
    ApiSettings,
    Environment,
    LogLevel,
    get_settings,
)

from config.constants import (
    ProbeErrorKind,
    SchedulerState,
    EventType,
    TransportType,
    Limits,
    Defaults,
    LogFiles,
    DEFAULT_TARGETS,
    PRESET_TARGETS,
)

__all__ = [
    # Settings
    "Settings",
    "MonitoringSettings",
    "StorageSettings",
    "LoggingSettings",
    "ApiSettings",
    "Environment",
    "LogLevel",
    "get_settings",

    # Constants
    "ProbeErrorKind",
    "SchedulerState",
    "EventType",
    "TransportType",
    "Limits",
    "Defaults",
    "LogFiles",
    "DEFAULT_TARGETS",
    "PRESET_TARGETS",
]

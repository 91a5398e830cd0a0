"""
Exceptions Package for Ping Monitor

Provides a comprehensive exception hierarchy for error handling
throughout the application.
"""

from exceptions.base import (
    PingMonitorException,
    ConfigPersistError,
)

from exceptions.validation import (
    ValidationException,
    InvalidAddressError,
    InvalidIntervalError,
    InvalidTimeoutError,
)

from exceptions.registry import (
    RegistryException,
    NotFoundError,
    DuplicateTargetError,
)

from exceptions.monitoring import (
    MonitoringException,
    ProbeException,
    ProbeTimeoutError,
    ProbeTransportError,
    HostUnreachableError,
    DNSResolutionError,
    AlreadyRunningError,
    LogWriteError,
)

__all__ = [
    # Base exceptions
    "PingMonitorException",
    "ConfigPersistError",

    # Validation exceptions
    "ValidationException",
    "InvalidAddressError",
    "InvalidIntervalError",
    "InvalidTimeoutError",

    # Registry exceptions
    "RegistryException",
    "NotFoundError",
    "DuplicateTargetError",

    # Monitoring exceptions
    "MonitoringException",
    "ProbeException",
    "ProbeTimeoutError",
    "ProbeTransportError",
    "HostUnreachableError",
    "DNSResolutionError",
    "AlreadyRunningError",
    "LogWriteError",
]

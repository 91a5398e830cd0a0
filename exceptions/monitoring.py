"""
Monitoring Exception Classes for Ping Monitor

Provides specialized exceptions for the probing pipeline: transport
failures, scheduler lifecycle misuse and probe log I/O errors.

Probe exceptions are raised by transports and caught by the probe
executor, which turns them into a failed ProbeOutcome. They never
reach command callers.
"""

from __future__ import annotations

from typing import Any, Optional
from exceptions.base import PingMonitorException
from config.constants import ProbeErrorKind


class MonitoringException(PingMonitorException):
    """
    Base Monitoring Exception

    Parent class for all monitoring-related exceptions.
    """

    default_error_code = 4000
    default_recoverable = True


class ProbeException(MonitoringException):
    """
    Base Probe Exception

    Raised by a probe transport for a single failed round-trip.
    ``kind`` is the classification recorded in the outcome.
    """

    default_error_code = 4100
    kind: ProbeErrorKind = ProbeErrorKind.TRANSPORT_ERROR

    def __init__(
        self,
        message: str = "Probe failed",
        address: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize probe exception.

        Args:
            message: Error message
            address: The probed address
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)

        if address:
            self.details["address"] = address


class ProbeTimeoutError(ProbeException):
    """No reply arrived within the probe timeout."""

    default_error_code = 4101
    kind = ProbeErrorKind.TIMEOUT

    def __init__(
        self,
        message: str = "Probe timed out",
        timeout: Optional[float] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if timeout is not None:
            self.details["timeout_seconds"] = timeout


class ProbeTransportError(ProbeException):
    """The transport failed to deliver or measure the probe."""

    default_error_code = 4102
    kind = ProbeErrorKind.TRANSPORT_ERROR


class HostUnreachableError(ProbeTransportError):
    """The network reported the destination as unreachable."""

    default_error_code = 4103
    kind = ProbeErrorKind.UNREACHABLE


class DNSResolutionError(ProbeTransportError):
    """The target hostname could not be resolved."""

    default_error_code = 4104
    kind = ProbeErrorKind.RESOLUTION_FAILED


class AlreadyRunningError(MonitoringException):
    """
    Already Running Error

    Raised when ``start`` is requested while the scheduler is running.
    """

    default_error_code = 4200

    def __init__(self, message: str = "Probing is already running", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class LogWriteError(MonitoringException):
    """
    Log Write Error

    Raised by the probe log writer when appending or rotating fails.
    Non-fatal: the engine keeps probing and retries on the next outcome.
    """

    default_error_code = 4300

    def __init__(
        self,
        message: str = "Failed to write probe log",
        path: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize log write error.

        Args:
            message: Error message
            path: The log file involved
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)

        if path:
            self.details["path"] = path

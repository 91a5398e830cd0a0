"""
Validation Exception Classes for Ping Monitor

Raised synchronously to command callers when a target address, a label
or a timing value is rejected. The control API maps all of them to 400.
"""

from __future__ import annotations

from typing import Any, Optional
from exceptions.base import PingMonitorException


# Longest value echoed back in error details
MAX_ECHOED_VALUE = 100


class ValidationException(PingMonitorException):
    """
    A command argument failed validation.

    ``details`` carries the offending ``field`` and a truncated string
    form of the rejected ``value``.
    """

    default_error_code = 3000

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = self._echo(value)

    @staticmethod
    def _echo(value: Any) -> str:
        text = str(value)
        if len(text) > MAX_ECHOED_VALUE:
            text = text[:MAX_ECHOED_VALUE] + "..."
        return text


class InvalidAddressError(ValidationException):
    """
    Not an IPv4/IPv6 literal and not a valid hostname.

    ``reason`` is one of ``empty``, ``not_a_string``, ``too_long`` or
    ``malformed``.
    """

    default_error_code = 3001

    def __init__(
        self,
        message: str = "Invalid probe address",
        address: Optional[str] = None,
        reason: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, field="address", value=address, **kwargs)

        if reason:
            self.details["reason"] = reason


class _RangeError(ValidationException):
    """A millisecond value outside [minimum, maximum]."""

    field_name = "value"

    def __init__(
        self,
        message: str,
        value_ms: Optional[int] = None,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, field=self.field_name, value=value_ms, **kwargs)

        if minimum is not None:
            self.details[f"min_{self.field_name}"] = minimum
        if maximum is not None:
            self.details[f"max_{self.field_name}"] = maximum


class InvalidIntervalError(_RangeError):
    """Tick interval below 100 ms or above the maximum."""

    default_error_code = 3002
    field_name = "interval"

    def __init__(
        self,
        message: str = "Invalid interval",
        interval: Optional[int] = None,
        min_interval: Optional[int] = None,
        max_interval: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, interval, min_interval, max_interval, **kwargs)


class InvalidTimeoutError(_RangeError):
    """Per-probe timeout outside the allowed range."""

    default_error_code = 3003
    field_name = "timeout"

    def __init__(
        self,
        message: str = "Invalid timeout",
        timeout: Optional[int] = None,
        min_timeout: Optional[int] = None,
        max_timeout: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, timeout, min_timeout, max_timeout, **kwargs)

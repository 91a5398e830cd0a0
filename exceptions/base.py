"""
Base Exception Classes for Ping Monitor

Every error the engine raises to a command caller derives from
PingMonitorException. Probe failures are the exception: they are
captured as data on the outcome and never reach a caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from utils.helpers import TimeHelper


class PingMonitorException(Exception):
    """
    Root of the engine's error hierarchy.

    Attributes:
        message: Human-readable error message
        error_code: Numeric code, grouped by family (1xxx base, 2xxx probe
            and scheduler, 3xxx validation, 4xxx registry)
        details: Structured context (field, value, path, ...)
        cause: The underlying exception, if any
        timestamp: When the error was raised (UTC)
        recoverable: False when the caller cannot retry meaningfully
    """

    default_error_code: int = 1000
    default_recoverable: bool = True

    def __init__(
        self,
        message: str = "Ping monitor error",
        error_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        recoverable: Optional[bool] = None
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self.timestamp = TimeHelper.get_utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """JSON body used by the control API and the log-write-error event."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "timestamp": TimeHelper.to_rfc3339(self.timestamp),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }

    def log_format(self) -> str:
        """One-line form for loguru messages."""
        line = f"{self.__class__.__name__}[{self.error_code}]: {self.message}"
        if self.details:
            line += f" {self.details}"
        if self.cause:
            line += f" (caused by {self.cause!r})"
        return line

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code}, "
            f"details={self.details})"
        )


class ConfigPersistError(PingMonitorException):
    """
    The stored AppConfig could not be read or written.

    Raised to the caller of save_config; the in-memory config that was
    just applied stays in effect.
    """

    default_error_code = 1200

    def __init__(
        self,
        message: str = "Failed to persist configuration",
        path: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if path:
            self.details["path"] = path

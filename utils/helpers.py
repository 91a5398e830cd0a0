"""
============================================================================
PING MONITOR - HELPERS UTILITY
============================================================================
Collection of helper functions and utilities.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from datetime import datetime, timezone


# ============================================================================
# TIME UTILITIES
# ============================================================================

class TimeHelper:
    """
    Time and date manipulation utilities.

    Every timestamp produced by the engine is timezone-aware UTC.
    """

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current UTC datetime (timezone-aware)."""
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normalize a datetime to timezone-aware UTC.

        Naive datetimes are assumed to already be in UTC.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_rfc3339(dt: datetime) -> str:
        """
        Format a datetime as an RFC 3339 UTC string with a ``Z`` suffix.

        Args:
            dt: Datetime to format

        Returns:
            String like ``2024-05-01T12:00:00.123456Z``
        """
        dt = TimeHelper.ensure_utc(dt)
        return dt.replace(tzinfo=None).isoformat() + "Z"

    @staticmethod
    def seconds_to_human_readable(seconds: int) -> str:
        """
        Convert seconds to human-readable format.

        Args:
            seconds: Number of seconds

        Returns:
            Human-readable string (e.g., "2h 30m 15s")
        """
        if seconds < 0:
            return "0s"

        days, remainder = divmod(seconds, 86400)
        hours, remainder = divmod(remainder, 3600)
        minutes, secs = divmod(remainder, 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        if secs > 0 or not parts:
            parts.append(f"{secs}s")

        return " ".join(parts)

"""
============================================================================
PING MONITOR - VALIDATORS UTILITY
============================================================================
Validation functions for probe addresses, labels and intervals.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import ipaddress
import re
from typing import Optional

from config.constants import Limits
from exceptions.validation import (
    InvalidAddressError,
    InvalidIntervalError,
    InvalidTimeoutError,
    ValidationException,
)


# ============================================================================
# ADDRESS VALIDATORS
# ============================================================================

class AddressValidator:
    """
    Probe address validation.

    An address is either an IPv4/IPv6 literal or a hostname made of
    alphanumeric/hyphen labels separated by dots.
    """

    # One hostname label: 1-63 chars, no leading/trailing hyphen
    LABEL_PATTERN = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")

    @staticmethod
    def is_valid_ip(address: str) -> bool:
        """
        Check if address is an IP literal.

        Args:
            address: Address to check

        Returns:
            True if valid IPv4/IPv6 literal, False otherwise
        """
        try:
            ipaddress.ip_address(address)
            return True
        except ValueError:
            return False

    @classmethod
    def is_valid_hostname(cls, address: str) -> bool:
        """
        Check if address is a syntactically valid hostname.

        A single trailing dot (fully-qualified form) is accepted.

        Args:
            address: Address to check

        Returns:
            True if valid, False otherwise
        """
        if address.endswith("."):
            address = address[:-1]

        if not address or len(address) > Limits.MAX_HOSTNAME_LENGTH:
            return False

        labels = address.split(".")
        if all(label.isdigit() for label in labels):
            # Dotted numbers that failed IP parsing, e.g. 256.1.1.1
            return False

        return all(cls.LABEL_PATTERN.match(label) for label in labels)

    @classmethod
    def validate(cls, address: Optional[str]) -> str:
        """
        Validate and normalize a probe address.

        Args:
            address: Raw address from the caller

        Returns:
            The address with surrounding whitespace removed

        Raises:
            InvalidAddressError: if the address is empty or malformed
        """
        if address is None or not isinstance(address, str):
            raise InvalidAddressError("Address must be a string", address=address, reason="not_a_string")

        address = address.strip()
        if not address:
            raise InvalidAddressError("Address cannot be empty", address=address, reason="empty")

        if cls.is_valid_ip(address) or cls.is_valid_hostname(address):
            return address

        raise InvalidAddressError(
            f"'{address}' is neither an IP address nor a valid hostname",
            address=address,
            reason="malformed",
        )


# ============================================================================
# FIELD VALIDATORS
# ============================================================================

def validate_label(label: Optional[str], address: str) -> str:
    """
    Normalize a display label; empty labels default to the address.

    Raises:
        ValidationException: if the label is too long
    """
    if label is None:
        return address

    label = str(label).strip()
    if not label:
        return address

    if len(label) > Limits.MAX_LABEL_LENGTH:
        raise ValidationException(
            f"Label exceeds {Limits.MAX_LABEL_LENGTH} characters",
            field="label",
            value=label,
        )
    return label


def validate_interval(interval_ms: int) -> int:
    """
    Check a probe interval against the allowed range.

    Raises:
        InvalidIntervalError: if the interval is not an integer in range
    """
    if isinstance(interval_ms, bool) or not isinstance(interval_ms, int):
        raise InvalidIntervalError(
            "Interval must be an integer number of milliseconds",
            interval=interval_ms,
            min_interval=Limits.MIN_PING_INTERVAL_MS,
            max_interval=Limits.MAX_PING_INTERVAL_MS,
        )

    if not Limits.MIN_PING_INTERVAL_MS <= interval_ms <= Limits.MAX_PING_INTERVAL_MS:
        raise InvalidIntervalError(
            f"Interval must be between {Limits.MIN_PING_INTERVAL_MS} and "
            f"{Limits.MAX_PING_INTERVAL_MS} ms",
            interval=interval_ms,
            min_interval=Limits.MIN_PING_INTERVAL_MS,
            max_interval=Limits.MAX_PING_INTERVAL_MS,
        )
    return interval_ms


def validate_timeout(timeout_ms: int) -> int:
    """
    Check a per-probe timeout against the allowed range.

    Raises:
        InvalidTimeoutError: if the timeout is not an integer in range
    """
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or not (
        Limits.MIN_TIMEOUT_MS <= timeout_ms <= Limits.MAX_TIMEOUT_MS
    ):
        raise InvalidTimeoutError(
            f"Timeout must be between {Limits.MIN_TIMEOUT_MS} and {Limits.MAX_TIMEOUT_MS} ms",
            timeout=timeout_ms,
            min_timeout=Limits.MIN_TIMEOUT_MS,
            max_timeout=Limits.MAX_TIMEOUT_MS,
        )
    return timeout_ms

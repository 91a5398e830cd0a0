"""
Registry Exception Classes for Ping Monitor

Provides specialized exceptions for target registry misuse:
lookups of unknown targets and duplicate registrations.
"""

from __future__ import annotations

from typing import Any, Optional
from exceptions.base import PingMonitorException


class RegistryException(PingMonitorException):
    """
    Base Registry Exception

    Parent class for all registry-related exceptions. Always raised
    synchronously to the command caller.
    """

    default_error_code = 2000
    default_recoverable = True


class NotFoundError(RegistryException):
    """
    Not Found Error

    Raised when a requested target (or its statistics) does not exist.
    """

    default_error_code = 2001

    def __init__(
        self,
        message: str = "Target not found",
        entity_type: Optional[str] = "PingTarget",
        entity_id: Optional[Any] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize not found error.

        Args:
            message: Error message
            entity_type: Type of entity not found
            entity_id: ID of the entity
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)

        if entity_type:
            self.details["entity_type"] = entity_type

        if entity_id is not None:
            self.details["entity_id"] = str(entity_id)


class DuplicateTargetError(RegistryException):
    """
    Duplicate Target Error

    Raised when adding a target whose (address, enabled) pair is
    already registered.
    """

    default_error_code = 2002

    def __init__(
        self,
        message: str = "Target already exists",
        address: Optional[str] = None,
        existing_id: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize duplicate error.

        Args:
            message: Error message
            address: The duplicate address
            existing_id: Id of the target already holding the address
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)

        if address:
            self.details["address"] = address[:100]

        if existing_id:
            self.details["existing_id"] = existing_id

"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ConflictException(RepositoryException):
    """Exception when a write would duplicate an existing resource."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class NoBusinessHoursConfiguredException(DomainException):
    """
    Raised when a due date is requested in business-hours mode but the
    scope has no usable business-hours window on any day of the week.
    """

    def __init__(
        self,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None,
        details: Optional[dict] = None
    ):
        self.department_id = department_id
        self.unit_id = unit_id
        super().__init__(
            "No business hours configuration found",
            details or {"department_id": department_id, "unit_id": unit_id}
        )

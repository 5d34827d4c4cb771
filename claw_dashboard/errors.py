"""Domain errors raised by services and rendered by the exception handlers in main.py."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for every error the dashboard reports to a caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DashboardError):
    """A required field is missing or a value is outside its allowed set."""

    status_code = 400


class ForbiddenError(DashboardError):
    status_code = 403


class NotFoundError(DashboardError):
    status_code = 404


class ConflictError(DashboardError):
    """The referenced record is in a state that forbids the operation."""

    status_code = 409


class DispatchError(DashboardError):
    """An outbound trigger to the agent gateway failed."""

    status_code = 502


class DispatchTimeoutError(DispatchError):
    status_code = 504


class StorageError(DashboardError):
    """A backing collection could not be written."""

    status_code = 500


class UnauthorizedError(DashboardError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)

"""
api/errors.py
-------------
Error kinds raised by the API client. Callers only need to catch
``ApiError``; the subclasses tell them what to show the user.
"""

from typing import Optional


class ApiError(Exception):
    """Base class for every failure talking to the backend."""


class UnauthenticatedError(ApiError):
    """No session, or the backend rejected the token (HTTP 401)."""


class UnreachableError(ApiError):
    """The backend could not be reached (DNS, refused connection, timeout)."""


class ServerRejectedError(ApiError):
    """
    The backend answered with an error status.

    Attributes:
        status: HTTP status code.
        message: Error message taken from the response body.
    """

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class NotFoundError(ServerRejectedError):
    """HTTP 404."""


class ConflictError(ServerRejectedError):
    """HTTP 409, e.g. a record with this id already exists."""


class SchemaError(ApiError):
    """
    A backend payload is missing a required field or has a malformed one.

    Attributes:
        field: Name of the offending field.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

"""
Domain error types.

Services raise these; route modules translate them into HTTPException with
the carried status code.
"""

from typing import Any, Optional


class ReviewError(Exception):
    """Base class for workflow errors that map onto an HTTP status."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(ReviewError):
    status_code = 404


class PermissionDenied(ReviewError):
    status_code = 403


class NotProvisionedError(PermissionDenied):
    """Authenticated identity with no application user record."""


class InvalidTransition(ReviewError):
    status_code = 400


class ValidationFailed(ReviewError):
    status_code = 400


class QuotaExceeded(ReviewError):
    status_code = 413

    def __init__(self, message: str, used: int = 0, limit: int = 0, requested: int = 0):
        super().__init__(message, details={"used": used, "limit": limit, "requested": requested})
        self.used = used
        self.limit = limit
        self.requested = requested


class DriveLinkError(ValidationFailed):
    """Google Drive URL could not be turned into an embeddable file link."""


class StorageError(ReviewError):
    """A storage backend call failed."""

    status_code = 502


class StorageNotFound(StorageError):
    status_code = 404

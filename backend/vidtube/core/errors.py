"""
Typed API errors.

Every business-rule failure raises one of these. A single exception handler
(registered in vidtube.main) turns them into the failure envelope:

    {"statusCode": 404, "success": false, "message": "...", "errors": [...]}

Services never build HTTP responses themselves; they raise and let the
handler translate.
"""

from typing import Any, Optional

from fastapi import status


class ApiError(Exception):
    """Base class for errors that map to an HTTP status and envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        field: Optional[str] = None,
        errors: Optional[list[Any]] = None,
    ):
        self.message = message or self.default_message
        self.field = field
        self.errors = list(errors) if errors else []
        if field and not self.errors:
            self.errors = [{"field": field, "message": self.message}]
        super().__init__(self.message)

    def to_envelope(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "success": False,
            "message": self.message,
            "errors": self.errors,
        }


class InvalidInputError(ApiError):
    """Missing or malformed fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class UnauthenticatedError(ApiError):
    """Missing, invalid, expired or revoked credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(ApiError):
    """Authenticated, but not allowed to touch this resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not allowed to modify this resource"


class NotFoundError(ApiError):
    """Entity absent, or hidden by a visibility rule."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(ApiError):
    """Uniqueness violation."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class TooManyRequestsError(ApiError):
    """Rate limit exceeded."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limit exceeded. Please try again later."


class InternalError(ApiError):
    """Store, transaction or blob failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"


class RequestTimeoutError(ApiError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_message = "The request took too long to complete"


__all__ = [
    "ApiError",
    "InvalidInputError",
    "UnauthenticatedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "TooManyRequestsError",
    "InternalError",
    "RequestTimeoutError",
]

from __future__ import annotations

from fastapi import status


class BookingError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal"
    default_detail = "Something went wrong. Please try again later."

    def __init__(self, detail: str | None = None, *, errors: dict[str, str] | None = None) -> None:
        self.detail = detail or self.default_detail
        self.errors = errors
        super().__init__(self.detail)

    def to_payload(self) -> dict:
        payload: dict = {"detail": self.detail, "code": self.code}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class Unauthenticated(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_detail = "Authentication required"


class PermissionDenied(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"
    default_detail = "Forbidden"


class InvalidArgument(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_argument"
    default_detail = "Invalid request"


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class AlreadyExists(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_exists"
    default_detail = "Already exists"


class Conflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "The record was changed by someone else. Reload and try again."


class ResourceExhausted(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "resource_exhausted"
    default_detail = "Not enough slots remaining"


class Internal(BookingError):
    pass

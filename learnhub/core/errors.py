"""Application error taxonomy.

Services raise subclasses of :class:`AppError`; the handlers registered in
``learnhub.main`` turn them into the JSON error body. ``kind`` is the
machine-readable category, ``code`` the specific reason within it.
"""

from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INTERNAL = "internal"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_code = "internal_error"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class UnauthorizedError(AppError):
    kind = ErrorKind.UNAUTHORIZED
    default_code = "unauthorized"


class ForbiddenError(AppError):
    kind = ErrorKind.FORBIDDEN
    default_code = "forbidden"


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    default_code = "not_found"


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT
    default_code = "conflict"


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION
    default_code = "validation_error"


def kind_for_status(status_code: int) -> ErrorKind:
    """Map an HTTP status back to an error kind for framework-raised errors."""
    for kind, code in STATUS_BY_KIND.items():
        if code == status_code:
            return kind
    if status_code == status.HTTP_400_BAD_REQUEST:
        return ErrorKind.VALIDATION
    return ErrorKind.INTERNAL

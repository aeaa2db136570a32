# Core infrastructure
from learnhub.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_request_id,
    set_user_id,
)
from learnhub.core.errors import (
    AppError,
    ConflictError,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware, set_user_context


__all__ = [
    "AppError",
    "ConflictError",
    "ErrorKind",
    "ForbiddenError",
    "NotFoundError",
    "RequestContextMiddleware",
    "UnauthorizedError",
    "ValidationError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_request_id",
    "set_user_context",
    "set_user_id",
]

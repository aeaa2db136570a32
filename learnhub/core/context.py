"""Request-scoped logging context backed by contextvars.

Values set here are picked up by the structlog processor in
``learnhub.core.logging`` so every log line emitted while serving a request
carries the request and caller identifiers.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID, generating one when none is supplied.

    Returns:
        The request ID now bound to the context.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_trace_id() -> str | None:
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None) -> None:
    correlation_id_var.set(correlation_id)


def get_context() -> dict[str, Any]:
    """Return the populated context variables as a dict for log injection."""
    values = {
        "request_id": get_request_id(),
        "user_id": get_user_id(),
        "trace_id": get_trace_id(),
        "correlation_id": get_correlation_id(),
    }
    return {key: value for key, value in values.items() if value}


def clear_context() -> None:
    """Reset every context variable at the end of a request."""
    request_id_var.set("")
    user_id_var.set(None)
    trace_id_var.set(None)
    correlation_id_var.set(None)

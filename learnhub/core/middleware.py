"""HTTP middleware binding request context and logging request timing."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from learnhub.core.context import (
    clear_context,
    set_correlation_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)


logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request/trace/correlation IDs and log each request.

    The request ID is taken from ``X-Request-ID`` when the caller sends one
    and is echoed back on the response.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"
    CORRELATION_ID_HEADER = "X-Correlation-ID"
    TRACEPARENT_HEADER = "traceparent"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or ["/health"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()

        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        trace_id = request.headers.get(self.TRACE_ID_HEADER) or _traceparent_id(
            request.headers.get(self.TRACEPARENT_HEADER)
        )
        if trace_id:
            set_trace_id(trace_id)
        correlation_id = request.headers.get(self.CORRELATION_ID_HEADER)
        if correlation_id:
            set_correlation_id(correlation_id)

        request.state.request_id = request_id
        should_log = self.log_requests and not any(
            request.url.path.startswith(path) for path in self.exclude_paths
        )

        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                client_ip=_client_ip(request),
            )

        try:
            response = await call_next(request)
            if should_log:
                log_method = (
                    logger.warning if response.status_code >= 400 else logger.info
                )
                log_method(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=_elapsed_ms(start_time),
                )
            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(start_time),
            )
            raise
        finally:
            clear_context()


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def _client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def _traceparent_id(traceparent: str | None) -> str | None:
    """Extract the trace ID from a W3C ``traceparent`` header."""
    if not traceparent:
        return None
    parts = traceparent.split("-")
    return parts[1] if len(parts) >= 2 else None


def set_user_context(user_id: str | None) -> None:
    """Attach the authenticated user to subsequent log lines."""
    set_user_id(user_id)


__all__ = ["RequestContextMiddleware", "set_user_context"]

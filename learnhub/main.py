"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.certificates.router import router as certificates_router
from learnhub.certificates.service import CertificateService
from learnhub.config import Settings, get_settings
from learnhub.core.context import get_request_id
from learnhub.core.database import init_async_cassandra, shutdown_async_cassandra
from learnhub.core.errors import AppError, ErrorKind, kind_for_status
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.core.redis import init_redis, shutdown_redis
from learnhub.courses.router import instructor_router as courses_instructor_router
from learnhub.courses.router import router as courses_router
from learnhub.courses.service import CourseService
from learnhub.email.service import EmailService
from learnhub.health import router as health_router
from learnhub.notifications.dispatcher import NotificationDispatcher
from learnhub.notifications.router import router as notifications_router
from learnhub.notifications.service import NotificationService
from learnhub.progress.router import enrollments_router
from learnhub.progress.router import router as progress_router
from learnhub.progress.service import ProgressService
from learnhub.quizzes.history import AttemptHistory
from learnhub.quizzes.router import router as quizzes_router
from learnhub.quizzes.service import QuizService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    course_service: CourseService | None = None
    progress_service: ProgressService | None = None
    quiz_service: QuizService | None = None
    certificate_service: CertificateService | None = None
    notification_service: NotificationService | None = None
    email_service: EmailService | None = None


app_state = AppState()


def build_services(
    app: FastAPI, session: Any, settings: Settings, redis_client: Any = None
) -> None:
    """Construct the services and publish them on ``app.state``.

    Order follows the dependencies: certificates need attempt history,
    progress hands completion to certificates, quizzes report to progress.
    """
    keyspace = settings.cassandra_keyspace

    course_service = CourseService(session=session, keyspace=keyspace)

    notification_service = NotificationService(
        session=session, keyspace=keyspace, redis=redis_client
    )
    dispatcher = NotificationDispatcher(
        notification_service=notification_service,
        email_service=app_state.email_service,
        app_url=settings.app_url,
    )

    attempt_history = AttemptHistory(session=session, keyspace=keyspace)

    certificate_service = CertificateService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        attempt_history=attempt_history,
        notifier=dispatcher,
        number_prefix=settings.certificate_number_prefix,
        max_number_attempts=settings.certificate_number_max_attempts,
    )

    progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        certificate_service=certificate_service,
        notifier=dispatcher,
    )

    quiz_service = QuizService(
        session=session,
        keyspace=keyspace,
        course_service=course_service,
        progress_service=progress_service,
        history=attempt_history,
        notifier=dispatcher,
        default_passing_score=settings.quiz_default_passing_score,
    )

    app_state.course_service = app.state.course_service = course_service
    app_state.notification_service = app.state.notification_service = (
        notification_service
    )
    app_state.certificate_service = app.state.certificate_service = (
        certificate_service
    )
    app_state.progress_service = app.state.progress_service = progress_service
    app_state.quiz_service = app.state.quiz_service = quiz_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is optional: notifications are still stored without it
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except (RedisError, OSError) as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - real-time notifications disabled",
        )

    # Email is built first so the dispatcher can use it
    if settings.email_configured:
        app_state.email_service = EmailService(
            credentials_path=settings.email_credentials_path,
            sender_address=settings.email_sender_address,
            sender_name=settings.email_sender_name,
        )
        app.state.email_service = app_state.email_service
        logger.info("email_service_initialized", sender=settings.email_sender_address)

    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")
    except Exception as e:
        # /health/ready reports not_ready and service routes answer 503
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )
    else:
        build_services(app, app_state.cassandra_session, settings, redis_client)
        logger.info("services_initialized", redis_enabled=redis_client is not None)

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def _get_request_id_safe(request: Request) -> str | None:
    """Get request_id from request state or context."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return get_request_id() or None


def error_body(
    request: Request,
    kind: ErrorKind,
    code: str,
    message: str,
    status_code: int,
    **extra: Any,
) -> dict[str, Any]:
    """Uniform error payload returned by every handler."""
    return {
        "error": True,
        "kind": kind.value,
        "code": code,
        "message": message,
        "status_code": status_code,
        "request_id": _get_request_id_safe(request),
        **extra,
    }


def register_exception_handlers(app: FastAPI) -> None:
    """Global exception handlers (never expose stack traces)."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
        """Domain errors raised by services."""
        log_method = (
            logger.error if exc.kind is ErrorKind.INTERNAL else logger.info
        )
        log_method(
            "app_error",
            kind=exc.kind.value,
            code=exc.code,
            error_message=exc.message,
            path=request.url.path,
            method=request.method,
        )

        message = exc.message
        if exc.kind is ErrorKind.INTERNAL:
            message = "Internal server error"
        return ORJSONResponse(
            status_code=exc.status_code,
            content=error_body(request, exc.kind, exc.code, message, exc.status_code),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        kind = kind_for_status(exc.status_code)
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=error_body(
                request, kind, f"http_{exc.status_code}", message, exc.status_code
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors; field messages are safe to expose."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(
                request,
                ErrorKind.VALIDATION,
                "invalid_request",
                "Validation error",
                status.HTTP_422_UNPROCESSABLE_ENTITY,
                details=[
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        SECURITY: Never expose stack traces or internal error details to users.
        All details are logged internally for debugging.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(
                request,
                ErrorKind.INTERNAL,
                "internal_error",
                "An unexpected error occurred. Please try again later.",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            ),
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # SECURITY: Always set debug=False to prevent Starlette's ServerErrorMiddleware
    # from exposing stack traces in responses.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LearnHub - courses, progress, quizzes and certificates API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(courses_router)
    app.include_router(courses_instructor_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(quizzes_router)
    app.include_router(certificates_router)
    app.include_router(notifications_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()

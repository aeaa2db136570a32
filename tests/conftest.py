"""Shared fixtures.

The application is created without running its lifespan, so no database or
Redis connection is opened. Route tests publish mocked services on
``app.state`` the way the lifespan would.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from learnhub.auth.context import ActorContext
from learnhub.auth.permissions import UserRole
from learnhub.config import get_settings


def make_token(
    user_id: UUID | None = None,
    role: UserRole = UserRole.STUDENT,
    email: str = "learner@test.com",
    name: str | None = "Test Learner",
    token_type: str = "access",
    expires_in: timedelta = timedelta(minutes=15),
) -> str:
    """Sign an access token the way the identity provider does."""
    settings = get_settings()
    claims: dict[str, Any] = {
        "sub": str(user_id or uuid4()),
        "email": email,
        "role": role.value,
        "type": token_type,
        "exp": datetime.now(UTC) + expires_in,
    }
    if name:
        claims["name"] = name
    return jwt.encode(
        claims, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def app() -> FastAPI:
    from learnhub.main import create_app

    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def student() -> ActorContext:
    return ActorContext(
        user_id=uuid4(),
        role=UserRole.STUDENT,
        email="learner@test.com",
        name="Test Learner",
    )


@pytest.fixture
def instructor() -> ActorContext:
    return ActorContext(
        user_id=uuid4(),
        role=UserRole.INSTRUCTOR,
        email="instructor@test.com",
        name="Test Instructor",
    )


@pytest.fixture
def admin() -> ActorContext:
    return ActorContext(user_id=uuid4(), role=UserRole.ADMIN, email="admin@test.com")


@pytest.fixture
def student_headers(student: ActorContext) -> dict[str, str]:
    return bearer(
        make_token(student.user_id, student.role, student.email, student.name)
    )


@pytest.fixture
def instructor_headers(instructor: ActorContext) -> dict[str, str]:
    return bearer(
        make_token(
            instructor.user_id, instructor.role, instructor.email, instructor.name
        )
    )


def result_of(rows: list[Any] | None = None, was_applied: bool = True) -> MagicMock:
    """Stand-in for a driver ResultSet: iterable, ``one()`` and ``was_applied``."""
    rows = rows or []
    result = MagicMock()
    result.__iter__.side_effect = lambda: iter(rows)
    result.one.return_value = rows[0] if rows else None
    result.was_applied = was_applied
    return result


@pytest.fixture
def mock_session() -> MagicMock:
    """Cassandra session whose ``aexecute`` returns empty results by default."""
    session = MagicMock()
    session.prepare = MagicMock(side_effect=lambda cql: MagicMock(query_string=cql))
    session.aexecute = AsyncMock(return_value=result_of())
    return session


@pytest.fixture
def make_result():
    """Factory for driver result stand-ins."""
    return result_of


@pytest.fixture
def token_for():
    """Factory signing access tokens for an actor."""

    def _token_for(actor: ActorContext, **overrides: Any) -> dict[str, str]:
        return bearer(
            make_token(actor.user_id, actor.role, actor.email, actor.name, **overrides)
        )

    return _token_for

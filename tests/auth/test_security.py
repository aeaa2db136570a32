"""Tests for access token validation and the auth dependencies."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from jose import JWTError, jwt

from learnhub.auth.permissions import UserRole
from learnhub.auth.security import decode_access_token
from learnhub.config import get_settings


def _sign(claims: dict) -> str:
    settings = get_settings()
    return jwt.encode(
        claims, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def _claims(**overrides) -> dict:
    claims = {
        "sub": str(uuid4()),
        "email": "learner@test.com",
        "role": UserRole.STUDENT.value,
        "type": "access",
        "exp": datetime.now(UTC) + timedelta(minutes=5),
    }
    claims.update(overrides)
    return claims


class TestDecodeAccessToken:
    """Tests for decode_access_token."""

    def test_valid_token(self) -> None:
        claims = _claims()
        payload = decode_access_token(_sign(claims))
        assert payload["sub"] == claims["sub"]
        assert payload["role"] == "student"

    def test_expired_token(self) -> None:
        token = _sign(_claims(exp=datetime.now(UTC) - timedelta(minutes=1)))
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_refresh_token_rejected(self) -> None:
        with pytest.raises(JWTError, match="Invalid token type"):
            decode_access_token(_sign(_claims(type="refresh")))

    def test_missing_claims_rejected(self) -> None:
        claims = _claims()
        del claims["email"]
        with pytest.raises(JWTError, match="email"):
            decode_access_token(_sign(claims))

    def test_wrong_key_rejected(self) -> None:
        token = jwt.encode(_claims(), "another-key-" * 4, algorithm="HS256")
        with pytest.raises(JWTError):
            decode_access_token(token)


class TestAuthDependencies:
    """Bearer handling on protected routes."""

    @pytest.fixture(autouse=True)
    def services(self, app) -> None:
        app.state.certificate_service = MagicMock()
        app.state.quiz_service = MagicMock()

    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/v1/certificates/my")
        assert response.status_code == 401
        body = response.json()
        assert body["kind"] == "unauthorized"
        assert body["code"] == "missing_token"

    def test_malformed_header(self, client: TestClient) -> None:
        response = client.get(
            "/v1/certificates/my", headers={"Authorization": "Token abc"}
        )
        assert response.status_code == 401
        assert response.json()["code"] == "missing_token"

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.get(
            "/v1/certificates/my", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_token"

    def test_student_cannot_author(
        self, app, client: TestClient, student_headers: dict[str, str]
    ) -> None:
        response = client.put(
            f"/v1/quizzes/lessons/{uuid4()}",
            headers=student_headers,
            json={"title": "Quiz", "questions": []},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "insufficient_role"
        app.state.quiz_service.upsert_quiz.assert_not_called()

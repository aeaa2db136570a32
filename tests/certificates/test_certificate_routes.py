"""Tests for the certificate endpoints."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from learnhub.certificates.models import Certificate
from learnhub.certificates.service import (
    CertificateNotFoundError,
    CourseNotCompletedError,
    IssuedCertificate,
)
from learnhub.progress.models import Enrollment


@pytest.fixture
def certificate(student) -> Certificate:
    return Certificate(
        certificate_no="CERT-LZ4K1M2QX9-7GQ2ZD",
        user_id=student.user_id,
        course_id=uuid4(),
        enrollment_id=uuid4(),
        holder_name="Test Learner",
        course_title="Clinical Pharmacy",
        issued_at=datetime(2026, 4, 2, tzinfo=UTC),
        grade=Decimal("92.50"),
    )


@pytest.fixture
def certificate_service(app: FastAPI) -> MagicMock:
    service = MagicMock()
    app.state.certificate_service = service
    return service


@pytest.fixture
def progress_service(app: FastAPI) -> MagicMock:
    service = MagicMock()
    service.require_enrollment = AsyncMock()
    app.state.progress_service = service
    return service


class TestVerifyCertificate:
    def test_public_verification(
        self, client: TestClient, certificate_service, certificate
    ) -> None:
        certificate_service.verify = AsyncMock(return_value=certificate)

        response = client.get(f"/v1/certificates/verify/{certificate.certificate_no}")

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["holder_name"] == "Test Learner"
        assert data["course_title"] == "Clinical Pharmacy"
        assert "user_id" not in data

    def test_unknown_number(self, client: TestClient, certificate_service) -> None:
        certificate_service.verify = AsyncMock(side_effect=CertificateNotFoundError())

        response = client.get("/v1/certificates/verify/CERT-NOPE-000000")

        assert response.status_code == 404
        assert response.json()["code"] == "certificate_not_found"


class TestIssueCertificate:
    def test_created(
        self,
        client: TestClient,
        certificate_service,
        progress_service,
        certificate,
        student,
        student_headers,
    ) -> None:
        progress_service.require_enrollment.return_value = Enrollment(
            user_id=student.user_id, course_id=certificate.course_id
        )
        certificate_service.issue_for_enrollment = AsyncMock(
            return_value=IssuedCertificate(certificate=certificate, created=True)
        )

        response = client.post(
            f"/v1/certificates/{certificate.course_id}", headers=student_headers
        )

        assert response.status_code == 201
        assert response.json()["certificate_no"] == certificate.certificate_no

    def test_existing_returns_200(
        self,
        client: TestClient,
        certificate_service,
        progress_service,
        certificate,
        student_headers,
    ) -> None:
        certificate_service.issue_for_enrollment = AsyncMock(
            return_value=IssuedCertificate(certificate=certificate, created=False)
        )

        response = client.post(
            f"/v1/certificates/{certificate.course_id}", headers=student_headers
        )

        assert response.status_code == 200
        assert response.json()["grade"] == "92.50"

    def test_not_completed(
        self, client: TestClient, certificate_service, progress_service, student_headers
    ) -> None:
        certificate_service.issue_for_enrollment = AsyncMock(
            side_effect=CourseNotCompletedError()
        )

        response = client.post(f"/v1/certificates/{uuid4()}", headers=student_headers)

        assert response.status_code == 422
        body = response.json()
        assert body["kind"] == "validation"
        assert body["code"] == "course_not_completed"


class TestMyCertificates:
    def test_list(
        self, client: TestClient, certificate_service, certificate, student_headers
    ) -> None:
        certificate_service.list_for_user = AsyncMock(return_value=[certificate])

        response = client.get("/v1/certificates/my", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["certificate_no"] == certificate.certificate_no

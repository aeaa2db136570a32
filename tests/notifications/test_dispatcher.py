"""Tests for NotificationDispatcher."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from learnhub.certificates.models import Certificate
from learnhub.courses.models import Course
from learnhub.notifications.dispatcher import NotificationDispatcher
from learnhub.notifications.models import NotificationType
from learnhub.quizzes.models import Quiz


@pytest.fixture
def notification_service() -> MagicMock:
    service = MagicMock()
    service.create_notification = AsyncMock()
    return service


@pytest.fixture
def email_service() -> MagicMock:
    service = MagicMock()
    service.send_course_completed = AsyncMock()
    service.send_certificate_issued = AsyncMock()
    return service


@pytest.fixture
def dispatcher(notification_service, email_service) -> NotificationDispatcher:
    return NotificationDispatcher(
        notification_service=notification_service,
        email_service=email_service,
        app_url="https://learnhub.example/",
    )


@pytest.fixture
def certificate(student) -> Certificate:
    return Certificate(
        certificate_no="CERT-ABC-123456",
        user_id=student.user_id,
        course_id=uuid4(),
        holder_name="Test Learner",
        course_title="Clinical Pharmacy",
        grade=Decimal("91.00"),
    )


class TestCertificateIssued:
    @pytest.mark.asyncio
    async def test_notifies_and_emails(
        self, dispatcher, notification_service, email_service, certificate, student
    ) -> None:
        await dispatcher.certificate_issued(student, certificate)

        notification = notification_service.create_notification.await_args.args[0]
        assert notification.type is NotificationType.CERTIFICATE_ISSUED
        assert notification.user_id == student.user_id
        assert notification.reference_id == "CERT-ABC-123456"

        kwargs = email_service.send_certificate_issued.await_args.kwargs
        assert kwargs["to"] == student.email
        assert kwargs["grade"] == "91.00"
        assert kwargs["verify_url"] == (
            "https://learnhub.example/certificates/verify/CERT-ABC-123456"
        )

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(
        self, dispatcher, notification_service, email_service, certificate, student
    ) -> None:
        notification_service.create_notification.side_effect = RuntimeError("db")
        email_service.send_certificate_issued.side_effect = RuntimeError("gmail")

        await dispatcher.certificate_issued(student, certificate)

        email_service.send_certificate_issued.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_email_service(
        self, notification_service, certificate, student
    ) -> None:
        dispatcher = NotificationDispatcher(notification_service)

        await dispatcher.certificate_issued(student, certificate)

        notification_service.create_notification.assert_awaited_once()


class TestOtherEvents:
    @pytest.mark.asyncio
    async def test_course_completed(
        self, dispatcher, notification_service, email_service, student
    ) -> None:
        course = Course(title="Clinical Pharmacy")

        await dispatcher.course_completed(student, course)

        notification = notification_service.create_notification.await_args.args[0]
        assert notification.type is NotificationType.COURSE_COMPLETED
        assert notification.course_id == course.id
        email_service.send_course_completed.assert_awaited_once_with(
            to=student.email,
            user_name=student.display_name,
            course_title="Clinical Pharmacy",
        )

    @pytest.mark.asyncio
    async def test_quiz_passed_is_in_app_only(
        self, dispatcher, notification_service, email_service, student
    ) -> None:
        quiz = Quiz(lesson_id=uuid4(), course_id=uuid4(), title="Checkpoint")

        await dispatcher.quiz_passed(student, quiz, Decimal("85.00"))

        notification = notification_service.create_notification.await_args.args[0]
        assert notification.type is NotificationType.QUIZ_PASSED
        assert "85.00%" in notification.message
        email_service.send_course_completed.assert_not_awaited()
        email_service.send_certificate_issued.assert_not_awaited()

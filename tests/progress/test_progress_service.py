"""Tests for ProgressService with a mocked session and collaborators."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from learnhub.auth.context import ActorContext
from learnhub.auth.permissions import UserRole
from learnhub.certificates.models import Certificate
from learnhub.certificates.service import IssuedCertificate
from learnhub.courses.models import ContentStatus, Course, Lesson
from learnhub.courses.service import CourseNotFoundError, LessonNotFoundError
from learnhub.progress.models import Enrollment, LessonProgress
from learnhub.progress.service import (
    AlreadyEnrolledError,
    EnrollmentNotFoundError,
    InvalidProgressError,
    PaymentRequiredError,
    ProgressService,
)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def course_service() -> MagicMock:
    service = MagicMock()
    service.get_course = AsyncMock(return_value=None)
    service.get_lesson = AsyncMock(return_value=None)
    service.get_published_lesson_ids = AsyncMock(return_value=[])
    return service


@pytest.fixture
def certificate_service() -> MagicMock:
    service = MagicMock()
    service.issue_for_enrollment = AsyncMock()
    return service


@pytest.fixture
def notifier() -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.course_completed = AsyncMock()
    return dispatcher


@pytest.fixture
def service(mock_session, course_service, certificate_service, notifier):
    return ProgressService(
        session=mock_session,
        keyspace="learnhub_test",
        course_service=course_service,
        certificate_service=certificate_service,
        notifier=notifier,
    )


@pytest.fixture
def course(instructor: ActorContext) -> Course:
    return Course(
        title="Intro to Pharmacology",
        instructor_id=instructor.user_id,
        status=ContentStatus.PUBLISHED.value,
    )


@pytest.fixture
def enrollment(student: ActorContext, course: Course) -> Enrollment:
    return Enrollment(user_id=student.user_id, course_id=course.id)


# ==============================================================================
# Enrollment
# ==============================================================================


class TestEnrollFree:
    @pytest.mark.asyncio
    async def test_unpublished_course_is_not_found(
        self, service, course_service, course, student
    ) -> None:
        course.status = ContentStatus.DRAFT.value
        course_service.get_course.return_value = course

        with pytest.raises(CourseNotFoundError):
            await service.enroll_free(student, course.id)

    @pytest.mark.asyncio
    async def test_paid_course_requires_purchase(
        self, service, course_service, course, student
    ) -> None:
        course.price = Decimal("49.90")
        course_service.get_course.return_value = course

        with pytest.raises(PaymentRequiredError):
            await service.enroll_free(student, course.id)

    @pytest.mark.asyncio
    async def test_second_enrollment_conflicts(
        self, service, course_service, course, student, mock_session, make_result
    ) -> None:
        course_service.get_course.return_value = course
        mock_session.aexecute.return_value = make_result(was_applied=False)

        with pytest.raises(AlreadyEnrolledError):
            await service.enroll_free(student, course.id)

        write, claim, cleanup = mock_session.aexecute.await_args_list
        assert write.args[0] is service._upsert_enrollment
        assert claim.args[0] is service._claim_enrollment
        # the losing enrollment row is removed
        assert cleanup.args[0] is service._delete_enrollment
        assert cleanup.args[1] == [write.args[1][0]]

    @pytest.mark.asyncio
    async def test_enrolls(
        self, service, course_service, course, student, mock_session
    ) -> None:
        course_service.get_course.return_value = course

        enrollment = await service.enroll_free(student, course.id)

        assert enrollment.user_id == student.user_id
        assert enrollment.course_id == course.id
        assert enrollment.progress_percent == 0
        # enrollment row first, then the claim row
        assert mock_session.aexecute.await_count == 2
        first, second = mock_session.aexecute.await_args_list
        assert first.args[0] is service._upsert_enrollment
        assert second.args[0] is service._claim_enrollment
        assert second.args[1][2] == enrollment.id


# ==============================================================================
# Progress Recording
# ==============================================================================


class TestRecordProgress:
    @pytest.mark.asyncio
    async def test_negative_watch_time(self, service, student, mock_session) -> None:
        with pytest.raises(InvalidProgressError):
            await service.record_progress(student, uuid4(), uuid4(), watched_seconds=-1)
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_foreign_enrollment_is_not_found(
        self, service, enrollment, course
    ) -> None:
        stranger = ActorContext(user_id=uuid4(), role=UserRole.STUDENT)
        service.get_enrollment = AsyncMock(return_value=enrollment)

        with pytest.raises(EnrollmentNotFoundError):
            await service.record_progress(stranger, enrollment.id, uuid4())

    @pytest.mark.asyncio
    async def test_lesson_of_another_course(
        self, service, course_service, enrollment, student
    ) -> None:
        service.get_enrollment = AsyncMock(return_value=enrollment)
        course_service.get_lesson.return_value = Lesson(
            course_id=uuid4(), chapter_id=uuid4(), is_published=True
        )

        with pytest.raises(LessonNotFoundError):
            await service.record_progress(student, enrollment.id, uuid4())

    @pytest.mark.asyncio
    async def test_partial_progress_does_not_issue(
        self,
        service,
        course_service,
        certificate_service,
        enrollment,
        student,
    ) -> None:
        lessons = [uuid4(), uuid4()]
        service.get_enrollment = AsyncMock(return_value=enrollment)
        service.get_lesson_progress = AsyncMock(return_value=None)
        course_service.get_lesson.return_value = Lesson(
            id=lessons[0], course_id=enrollment.course_id, chapter_id=uuid4()
        )
        course_service.get_published_lesson_ids.return_value = lessons
        service.list_lesson_progress = AsyncMock(
            side_effect=lambda _: [
                LessonProgress(
                    enrollment_id=enrollment.id,
                    lesson_id=lessons[0],
                    user_id=enrollment.user_id,
                    course_id=enrollment.course_id,
                    is_completed=True,
                )
            ]
        )

        update = await service.record_progress(
            student, enrollment.id, lessons[0], watched_seconds=90, completed=True
        )

        assert update.progress.is_completed is True
        assert update.progress.watched_seconds == 90
        assert update.outcome.progress_percent == 50
        assert update.certificate_no is None
        assert enrollment.last_lesson_id == lessons[0]
        certificate_service.issue_for_enrollment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_last_lesson_completes_course_and_issues_certificate(
        self,
        service,
        course_service,
        certificate_service,
        notifier,
        enrollment,
        course,
        student,
    ) -> None:
        lesson_id = uuid4()
        service.get_enrollment = AsyncMock(return_value=enrollment)
        service.get_lesson_progress = AsyncMock(return_value=None)
        course_service.get_lesson.return_value = Lesson(
            id=lesson_id, course_id=enrollment.course_id, chapter_id=uuid4()
        )
        course_service.get_published_lesson_ids.return_value = [lesson_id]
        course_service.get_course.return_value = course
        service.list_lesson_progress = AsyncMock(
            return_value=[
                LessonProgress(
                    enrollment_id=enrollment.id,
                    lesson_id=lesson_id,
                    user_id=enrollment.user_id,
                    course_id=enrollment.course_id,
                    is_completed=True,
                )
            ]
        )
        certificate = Certificate(
            certificate_no="CERT-ABC123-XYZ789",
            user_id=student.user_id,
            course_id=course.id,
            grade=Decimal("100.00"),
        )
        certificate_service.issue_for_enrollment.return_value = IssuedCertificate(
            certificate=certificate, created=True
        )

        update = await service.record_progress(
            student, enrollment.id, lesson_id, completed=True
        )

        assert update.outcome.newly_completed is True
        assert update.enrollment.is_completed is True
        assert update.certificate_no == "CERT-ABC123-XYZ789"
        certificate_service.issue_for_enrollment.assert_awaited_once_with(
            student, enrollment, course
        )
        notifier.course_completed.assert_awaited_once_with(student, course)

    @pytest.mark.asyncio
    async def test_failed_issuance_is_retried_on_next_update(
        self,
        service,
        course_service,
        certificate_service,
        notifier,
        enrollment,
        course,
        student,
    ) -> None:
        lesson_id = uuid4()
        service.get_enrollment = AsyncMock(return_value=enrollment)
        service.get_lesson_progress = AsyncMock(return_value=None)
        course_service.get_lesson.return_value = Lesson(
            id=lesson_id, course_id=enrollment.course_id, chapter_id=uuid4()
        )
        course_service.get_published_lesson_ids.return_value = [lesson_id]
        course_service.get_course.return_value = course
        service.list_lesson_progress = AsyncMock(
            return_value=[
                LessonProgress(
                    enrollment_id=enrollment.id,
                    lesson_id=lesson_id,
                    user_id=enrollment.user_id,
                    course_id=enrollment.course_id,
                    is_completed=True,
                )
            ]
        )
        certificate = Certificate(
            certificate_no="CERT-ABC123-XYZ789",
            user_id=student.user_id,
            course_id=course.id,
            grade=Decimal("100.00"),
        )
        certificate_service.issue_for_enrollment.side_effect = [
            RuntimeError("write timeout"),
            IssuedCertificate(certificate=certificate, created=True),
        ]

        with pytest.raises(RuntimeError):
            await service.record_progress(
                student, enrollment.id, lesson_id, completed=True
            )
        assert enrollment.is_completed is True

        update = await service.record_progress(student, enrollment.id, lesson_id)

        assert update.outcome.newly_completed is False
        assert update.certificate_no == "CERT-ABC123-XYZ789"
        assert certificate_service.issue_for_enrollment.await_count == 2
        certificate_service.issue_for_enrollment.assert_awaited_with(
            student, enrollment, None
        )
        # the completion itself is announced once
        notifier.course_completed.assert_awaited_once_with(student, course)

    @pytest.mark.asyncio
    async def test_completed_course_keeps_its_certificate(
        self,
        service,
        course_service,
        certificate_service,
        notifier,
        enrollment,
        student,
    ) -> None:
        lesson_id = uuid4()
        enrollment.is_completed = True
        service.get_enrollment = AsyncMock(return_value=enrollment)
        service.get_lesson_progress = AsyncMock(return_value=None)
        course_service.get_lesson.return_value = Lesson(
            id=lesson_id, course_id=enrollment.course_id, chapter_id=uuid4()
        )
        course_service.get_published_lesson_ids.return_value = [lesson_id]
        service.list_lesson_progress = AsyncMock(return_value=[])
        existing = Certificate(
            certificate_no="CERT-OLD111-AAA222",
            user_id=student.user_id,
            course_id=enrollment.course_id,
        )
        certificate_service.issue_for_enrollment.return_value = IssuedCertificate(
            certificate=existing, created=False
        )

        update = await service.record_progress(student, enrollment.id, lesson_id)

        assert update.enrollment.is_completed is True
        assert update.outcome.progress_percent == 0
        assert update.certificate_no == "CERT-OLD111-AAA222"
        notifier.course_completed.assert_not_awaited()
        course_service.get_course.assert_not_awaited()

"""Enrollment and progress service layer.

Business logic for:
- Enrollment creation (free enroll and upstream purchase)
- Progress recording per (enrollment, lesson)
- Completion evaluation, which hands off to certificate issuance at 100%
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from learnhub.courses.service import CourseNotFoundError, LessonNotFoundError
from learnhub.progress.completion import CompletionOutcome, apply_completion
from learnhub.progress.models import Enrollment, LessonProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.auth.context import ActorContext
    from learnhub.certificates.service import CertificateService
    from learnhub.courses.service import CourseService
    from learnhub.notifications.dispatcher import NotificationDispatcher

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EnrollmentNotFoundError(NotFoundError):
    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class AlreadyEnrolledError(ConflictError):
    def __init__(self, message: str = "Already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class PaymentRequiredError(ForbiddenError):
    def __init__(self, message: str = "This course must be purchased"):
        super().__init__(message, "payment_required")


class InvalidProgressError(ValidationError):
    def __init__(self, message: str = "Watched seconds cannot be negative"):
        super().__init__(message, "invalid_progress")


@dataclass
class ProgressUpdate:
    """What a progress update changed."""

    progress: LessonProgress
    enrollment: Enrollment
    outcome: CompletionOutcome
    certificate_no: str | None = None


@dataclass
class CourseProgress:
    enrollment: Enrollment
    lessons: dict[UUID, LessonProgress]
    total_lessons: int
    completed_lessons: int


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for enrollments, lesson progress and course completion."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        certificate_service: "CertificateService",
        notifier: "NotificationDispatcher | None" = None,
    ):
        """Initialize with Cassandra session and collaborating services."""
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.certificate_service = certificate_service
        self.notifier = notifier
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Enrollments
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments WHERE id = ?
        """)

        self._upsert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (id, user_id, course_id, status, progress_percent, is_completed,
             enrolled_at, started_at, completed_at, updated_at, last_lesson_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._delete_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments WHERE id = ?
        """)

        # Enrollments by user: claim row and summary
        self._claim_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, enrollment_id, status, progress_percent,
             is_completed, enrolled_at, started_at, completed_at, updated_at,
             last_lesson_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_enrollment_by_user = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments_by_user
            SET status = ?, progress_percent = ?, is_completed = ?,
                started_at = ?, completed_at = ?, updated_at = ?,
                last_lesson_id = ?
            WHERE user_id = ? AND course_id = ?
        """)

        self._get_enrollment_by_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ? AND course_id = ?
        """)

        self._get_user_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user WHERE user_id = ?
        """)

        # Lesson progress
        self._get_lesson_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress
            WHERE enrollment_id = ? AND lesson_id = ?
        """)

        self._get_enrollment_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress WHERE enrollment_id = ?
        """)

        self._upsert_lesson_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_progress
            (enrollment_id, lesson_id, user_id, course_id, watched_seconds,
             is_completed, completed_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll_free(self, actor: "ActorContext", course_id: UUID) -> Enrollment:
        """Enroll the caller in a free, published course.

        Raises:
            CourseNotFoundError: Course missing or not published
            PaymentRequiredError: Course is not free
            AlreadyEnrolledError: Caller already enrolled
        """
        course = await self.course_service.get_course(course_id)
        if not course or not course.is_published:
            raise CourseNotFoundError()
        if not course.is_free:
            raise PaymentRequiredError()

        return await self.create_enrollment(actor.user_id, course_id)

    async def create_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment:
        """Create the enrollment for (user, course).

        Also the entry point for the purchase flow. The enrollment row is
        written first, then the (user, course) claim with IF NOT EXISTS so two
        concurrent requests cannot both enroll. The losing request removes
        its enrollment row.

        Raises:
            AlreadyEnrolledError: If an enrollment already exists
        """
        enrollment = Enrollment(user_id=user_id, course_id=course_id)
        await self._write_enrollment(enrollment)

        result = await self.session.aexecute(
            self._claim_enrollment,
            [
                enrollment.user_id,
                enrollment.course_id,
                enrollment.id,
                enrollment.status,
                enrollment.progress_percent,
                enrollment.is_completed,
                enrollment.enrolled_at,
                enrollment.started_at,
                enrollment.completed_at,
                enrollment.updated_at,
                enrollment.last_lesson_id,
            ],
        )
        if not result.was_applied:
            await self.session.aexecute(self._delete_enrollment, [enrollment.id])
            raise AlreadyEnrolledError()

        logger.info(
            "user_enrolled",
            enrollment_id=str(enrollment.id),
            user_id=str(user_id),
            course_id=str(course_id),
        )
        return enrollment

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        result = await self.session.aexecute(self._get_enrollment, [enrollment_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def get_own_enrollment(
        self, actor: "ActorContext", enrollment_id: UUID
    ) -> Enrollment:
        """Get an enrollment that belongs to the caller.

        Someone else's enrollment is reported as missing rather than forbidden.
        """
        enrollment = await self.get_enrollment(enrollment_id)
        if not enrollment or enrollment.user_id != actor.user_id:
            raise EnrollmentNotFoundError()
        return enrollment

    async def find_enrollment(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        """Enrollment of a user in a course, if any."""
        result = await self.session.aexecute(
            self._get_enrollment_by_user, [user_id, course_id]
        )
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def require_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment:
        enrollment = await self.find_enrollment(user_id, course_id)
        if not enrollment:
            raise EnrollmentNotFoundError()
        return enrollment

    async def list_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        """All enrollments of a user, newest first."""
        rows = await self.session.aexecute(self._get_user_enrollments, [user_id])
        enrollments = [Enrollment.from_row(row) for row in rows]
        return sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)

    async def _write_enrollment(self, enrollment: Enrollment) -> None:
        await self.session.aexecute(
            self._upsert_enrollment,
            [
                enrollment.id,
                enrollment.user_id,
                enrollment.course_id,
                enrollment.status,
                enrollment.progress_percent,
                enrollment.is_completed,
                enrollment.enrolled_at,
                enrollment.started_at,
                enrollment.completed_at,
                enrollment.updated_at,
                enrollment.last_lesson_id,
            ],
        )

    async def _save_enrollment(self, enrollment: Enrollment) -> None:
        """Update enrollment in both tables (dual-write)."""
        await self._write_enrollment(enrollment)
        await self.session.aexecute(
            self._update_enrollment_by_user,
            [
                enrollment.status,
                enrollment.progress_percent,
                enrollment.is_completed,
                enrollment.started_at,
                enrollment.completed_at,
                enrollment.updated_at,
                enrollment.last_lesson_id,
                enrollment.user_id,
                enrollment.course_id,
            ],
        )

    # ==========================================================================
    # Progress Recording
    # ==========================================================================

    async def get_lesson_progress(
        self, enrollment_id: UUID, lesson_id: UUID
    ) -> LessonProgress | None:
        result = await self.session.aexecute(
            self._get_lesson_progress, [enrollment_id, lesson_id]
        )
        row = result.one()
        return LessonProgress.from_row(row) if row else None

    async def list_lesson_progress(self, enrollment_id: UUID) -> list[LessonProgress]:
        rows = await self.session.aexecute(
            self._get_enrollment_progress, [enrollment_id]
        )
        return [LessonProgress.from_row(row) for row in rows]

    async def _save_lesson_progress(self, progress: LessonProgress) -> None:
        await self.session.aexecute(
            self._upsert_lesson_progress,
            [
                progress.enrollment_id,
                progress.lesson_id,
                progress.user_id,
                progress.course_id,
                progress.watched_seconds,
                progress.is_completed,
                progress.completed_at,
                progress.created_at,
                progress.updated_at,
            ],
        )

    async def record_progress(
        self,
        actor: "ActorContext",
        enrollment_id: UUID,
        lesson_id: UUID,
        watched_seconds: int | None = None,
        completed: bool | None = None,
    ) -> ProgressUpdate:
        """Upsert a lesson's watch state, then re-evaluate the enrollment.

        Args:
            actor: Caller, who must own the enrollment
            enrollment_id: Enrollment UUID
            lesson_id: Lesson UUID, must belong to the enrolled course
            watched_seconds: New watched duration, unchanged when None
            completed: New completion flag, unchanged when None

        Raises:
            EnrollmentNotFoundError: Enrollment missing or not the caller's
            LessonNotFoundError: Lesson missing or in another course
            InvalidProgressError: Negative watched duration
        """
        if watched_seconds is not None and watched_seconds < 0:
            raise InvalidProgressError()

        enrollment = await self.get_own_enrollment(actor, enrollment_id)

        lesson = await self.course_service.get_lesson(lesson_id)
        if not lesson or lesson.course_id != enrollment.course_id:
            raise LessonNotFoundError()

        now = datetime.now(UTC)
        progress = await self.get_lesson_progress(enrollment.id, lesson_id)
        if progress is None:
            progress = LessonProgress(
                enrollment_id=enrollment.id,
                lesson_id=lesson_id,
                user_id=enrollment.user_id,
                course_id=enrollment.course_id,
                created_at=now,
            )
        progress.apply_update(watched_seconds, completed, now)
        await self._save_lesson_progress(progress)

        logger.info(
            "lesson_progress_recorded",
            enrollment_id=str(enrollment.id),
            lesson_id=str(lesson_id),
            watched_seconds=progress.watched_seconds,
            is_completed=progress.is_completed,
        )

        enrollment.last_lesson_id = lesson_id
        outcome, certificate_no = await self.evaluate_completion(actor, enrollment)

        return ProgressUpdate(
            progress=progress,
            enrollment=enrollment,
            outcome=outcome,
            certificate_no=certificate_no,
        )

    async def mark_lesson_complete(
        self, actor: "ActorContext", enrollment: Enrollment, lesson_id: UUID
    ) -> ProgressUpdate:
        """Mark a lesson complete, e.g. after its quiz was passed."""
        return await self.record_progress(
            actor, enrollment.id, lesson_id, completed=True
        )

    # ==========================================================================
    # Completion Evaluation
    # ==========================================================================

    async def evaluate_completion(
        self, actor: "ActorContext", enrollment: Enrollment
    ) -> tuple[CompletionOutcome, str | None]:
        """Recompute the enrollment from its progress rows and persist it.

        When this evaluation completes the course, the learner is notified.
        Every evaluation of a completed enrollment issues its certificate,
        which is a lookup once it exists.

        Returns:
            The outcome and, for a completed course, the certificate number.
        """
        lesson_ids = await self.course_service.get_published_lesson_ids(
            enrollment.course_id
        )
        progress = await self.list_lesson_progress(enrollment.id)

        outcome = apply_completion(enrollment, lesson_ids, progress, datetime.now(UTC))
        await self._save_enrollment(enrollment)

        logger.info(
            "enrollment_progress_evaluated",
            enrollment_id=str(enrollment.id),
            progress_percent=outcome.progress_percent,
            completed_lessons=outcome.completed_lessons,
            total_lessons=outcome.total_lessons,
        )

        if not enrollment.is_completed:
            return outcome, None

        course = None
        if outcome.newly_completed:
            logger.info(
                "enrollment_completed",
                enrollment_id=str(enrollment.id),
                user_id=str(enrollment.user_id),
                course_id=str(enrollment.course_id),
            )
            course = await self.course_service.get_course(enrollment.course_id)
            if self.notifier and course:
                await self.notifier.course_completed(actor, course)

        # Returns the existing certificate, or issues one that was never written
        issued = await self.certificate_service.issue_for_enrollment(
            actor, enrollment, course
        )
        return outcome, issued.certificate.certificate_no

    # ==========================================================================
    # Progress Queries
    # ==========================================================================

    async def get_course_progress(
        self, actor: "ActorContext", course_id: UUID
    ) -> CourseProgress:
        """Progress overview of the caller in a course.

        Raises:
            EnrollmentNotFoundError: Caller is not enrolled
        """
        enrollment = await self.require_enrollment(actor.user_id, course_id)
        lesson_ids = await self.course_service.get_published_lesson_ids(course_id)
        progress = await self.list_lesson_progress(enrollment.id)

        published = set(lesson_ids)
        lessons = {p.lesson_id: p for p in progress if p.lesson_id in published}

        return CourseProgress(
            enrollment=enrollment,
            lessons=lessons,
            total_lessons=len(published),
            completed_lessons=sum(1 for p in lessons.values() if p.is_completed),
        )

    async def get_lesson_progress_for(
        self, actor: "ActorContext", lesson_id: UUID
    ) -> tuple[Enrollment, LessonProgress | None]:
        """The caller's enrollment and stored progress for one lesson.

        Raises:
            LessonNotFoundError: Lesson does not exist
            EnrollmentNotFoundError: Caller is not enrolled in its course
        """
        lesson = await self.course_service.require_lesson(lesson_id)
        enrollment = await self.require_enrollment(actor.user_id, lesson.course_id)
        progress = await self.get_lesson_progress(enrollment.id, lesson_id)
        return enrollment, progress

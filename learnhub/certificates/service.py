"""Certificate service layer.

Business logic for:
- Idempotent issuance for completed enrollments
- Grade calculation from the learner's best quiz scores
- Certificate reads and public verification
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.certificates.models import Certificate
from learnhub.certificates.numbers import generate_certificate_number
from learnhub.core.errors import AppError, NotFoundError, ValidationError


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.auth.context import ActorContext
    from learnhub.courses.models import Course
    from learnhub.courses.service import CourseService
    from learnhub.notifications.dispatcher import NotificationDispatcher
    from learnhub.progress.models import Enrollment
    from learnhub.quizzes.history import AttemptHistory

logger = structlog.get_logger(__name__)

FULL_GRADE = Decimal(100)
GRADE_QUANTUM = Decimal("0.01")


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CertificateNotFoundError(NotFoundError):
    def __init__(self, message: str = "Certificate not found"):
        super().__init__(message, "certificate_not_found")


class CourseNotCompletedError(ValidationError):
    def __init__(self, message: str = "Complete the course to get a certificate"):
        super().__init__(message, "course_not_completed")


class CertificateNumberUnavailableError(AppError):
    default_code = "certificate_number_unavailable"


@dataclass
class IssuedCertificate:
    certificate: Certificate
    created: bool


def average_best_scores(best_scores: dict[UUID, Decimal]) -> Decimal:
    """Mean of the best score per quiz; a full grade when no quiz was taken."""
    if not best_scores:
        return FULL_GRADE.quantize(GRADE_QUANTUM)
    total = sum(best_scores.values(), Decimal(0))
    return (total / len(best_scores)).quantize(GRADE_QUANTUM, rounding=ROUND_HALF_UP)


# ==============================================================================
# Certificate Service
# ==============================================================================


class CertificateService:
    """Service for certificate issuance and verification."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        attempt_history: "AttemptHistory",
        notifier: "NotificationDispatcher | None" = None,
        number_prefix: str = "CERT",
        max_number_attempts: int = 5,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.attempt_history = attempt_history
        self.notifier = notifier
        self.number_prefix = number_prefix
        self.max_number_attempts = max_number_attempts
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert_certificate = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.certificates
            (certificate_no, user_id, course_id, enrollment_id, holder_name,
             course_title, issued_at, completed_at, grade)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_certificate = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.certificates WHERE certificate_no = ?
        """)

        self._delete_certificate = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.certificates WHERE certificate_no = ?
        """)

        self._claim_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.certificates_by_user
            (user_id, course_id, certificate_no, course_title, issued_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_by_user_course = self.session.prepare(f"""
            SELECT certificate_no FROM {self.keyspace}.certificates_by_user
            WHERE user_id = ? AND course_id = ?
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT certificate_no FROM {self.keyspace}.certificates_by_user
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Issuance
    # ==========================================================================

    async def issue_for_enrollment(
        self,
        actor: "ActorContext",
        enrollment: "Enrollment",
        course: "Course | None" = None,
    ) -> IssuedCertificate:
        """Issue the certificate of a completed enrollment, once.

        An existing certificate for (user, course) is returned unchanged.

        Raises:
            CourseNotCompletedError: Enrollment is not completed
            CertificateNumberUnavailableError: No unique number could be drawn
        """
        if not enrollment.is_completed:
            raise CourseNotCompletedError()

        existing = await self.get_for_course(enrollment.user_id, enrollment.course_id)
        if existing:
            return IssuedCertificate(certificate=existing, created=False)

        if course is None:
            course = await self.course_service.require_course(enrollment.course_id)

        best_scores = await self.attempt_history.best_scores(
            enrollment.user_id, enrollment.course_id
        )
        certificate = await self._insert_with_unique_number(
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
            holder_name=actor.display_name,
            course_title=course.title,
            completed_at=enrollment.completed_at,
            grade=average_best_scores(best_scores),
        )

        claim = await self.session.aexecute(
            self._claim_by_user,
            [
                certificate.user_id,
                certificate.course_id,
                certificate.certificate_no,
                certificate.course_title,
                certificate.issued_at,
            ],
        )
        if not claim.was_applied:
            # A concurrent request issued first; keep its certificate
            await self.session.aexecute(
                self._delete_certificate, [certificate.certificate_no]
            )
            winner = await self.get_for_course(
                enrollment.user_id, enrollment.course_id
            )
            if winner is None:
                raise CertificateNotFoundError()
            return IssuedCertificate(certificate=winner, created=False)

        logger.info(
            "certificate_issued",
            certificate_no=certificate.certificate_no,
            user_id=str(certificate.user_id),
            course_id=str(certificate.course_id),
            grade=str(certificate.grade),
        )

        if self.notifier:
            await self.notifier.certificate_issued(actor, certificate)

        return IssuedCertificate(certificate=certificate, created=True)

    async def _insert_with_unique_number(self, **fields) -> Certificate:
        for attempt in range(1, self.max_number_attempts + 1):
            certificate = Certificate(
                certificate_no=generate_certificate_number(self.number_prefix),
                **fields,
            )
            result = await self.session.aexecute(
                self._insert_certificate,
                [
                    certificate.certificate_no,
                    certificate.user_id,
                    certificate.course_id,
                    certificate.enrollment_id,
                    certificate.holder_name,
                    certificate.course_title,
                    certificate.issued_at,
                    certificate.completed_at,
                    certificate.grade,
                ],
            )
            if result.was_applied:
                return certificate

            logger.warning(
                "certificate_number_collision",
                certificate_no=certificate.certificate_no,
                attempt=attempt,
            )

        raise CertificateNumberUnavailableError(
            "Could not allocate a certificate number"
        )

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_by_number(self, certificate_no: str) -> Certificate | None:
        result = await self.session.aexecute(self._get_certificate, [certificate_no])
        row = result.one()
        return Certificate.from_row(row) if row else None

    async def get_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None:
        result = await self.session.aexecute(
            self._get_by_user_course, [user_id, course_id]
        )
        ref = result.one()
        if not ref:
            return None
        return await self.get_by_number(ref.certificate_no)

    async def require_for_course(self, user_id: UUID, course_id: UUID) -> Certificate:
        certificate = await self.get_for_course(user_id, course_id)
        if not certificate:
            raise CertificateNotFoundError()
        return certificate

    async def list_for_user(self, user_id: UUID) -> list[Certificate]:
        """Certificates of a user, most recently issued first."""
        rows = await self.session.aexecute(self._list_by_user, [user_id])
        certificates = []
        for row in rows:
            certificate = await self.get_by_number(row.certificate_no)
            if certificate:
                certificates.append(certificate)
        return sorted(certificates, key=lambda c: c.issued_at, reverse=True)

    async def verify(self, certificate_no: str) -> Certificate:
        """Look up a certificate by its public number.

        Raises:
            CertificateNotFoundError: No certificate has this number
        """
        certificate = await self.get_by_number(certificate_no.strip().upper())
        if not certificate:
            logger.info(
                "certificate_verification_failed", certificate_no=certificate_no
            )
            raise CertificateNotFoundError()
        return certificate

"""Fire-and-forget delivery of learning milestones.

The workflow calls the dispatcher after its own writes have succeeded; a
failed notification or email is logged and never fails the request.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from learnhub.notifications.models import (
    create_certificate_notification,
    create_course_completed_notification,
    create_quiz_passed_notification,
)


if TYPE_CHECKING:
    from learnhub.auth.context import ActorContext
    from learnhub.certificates.models import Certificate
    from learnhub.courses.models import Course
    from learnhub.email.service import EmailService
    from learnhub.notifications.models import Notification
    from learnhub.notifications.service import NotificationService
    from learnhub.quizzes.models import Quiz

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """In-app notifications plus email for course events."""

    def __init__(
        self,
        notification_service: "NotificationService",
        email_service: "EmailService | None" = None,
        app_url: str = "",
    ):
        self.notification_service = notification_service
        self.email_service = email_service
        self.app_url = app_url.rstrip("/")

    async def _notify(self, notification: "Notification") -> None:
        try:
            await self.notification_service.create_notification(notification)
        except Exception:
            logger.warning(
                "notification_dispatch_failed",
                notification_type=notification.type.value,
                recipient_id=str(notification.user_id),
                exc_info=True,
            )

    async def course_completed(self, actor: "ActorContext", course: "Course") -> None:
        await self._notify(
            create_course_completed_notification(actor.user_id, course.id, course.title)
        )

        if not (self.email_service and actor.email):
            return
        try:
            await self.email_service.send_course_completed(
                to=actor.email,
                user_name=actor.display_name,
                course_title=course.title,
            )
        except Exception:
            logger.warning(
                "course_completed_email_failed",
                course_id=str(course.id),
                exc_info=True,
            )

    async def certificate_issued(
        self, actor: "ActorContext", certificate: "Certificate"
    ) -> None:
        course_title = certificate.course_title or ""
        await self._notify(
            create_certificate_notification(
                certificate.user_id,
                certificate.course_id,
                course_title,
                certificate.certificate_no,
            )
        )

        if not (self.email_service and actor.email):
            return
        try:
            await self.email_service.send_certificate_issued(
                to=actor.email,
                user_name=certificate.holder_name or actor.display_name,
                course_title=course_title,
                certificate_no=certificate.certificate_no,
                grade=str(certificate.grade) if certificate.grade is not None else "-",
                verify_url=self.verify_url(certificate.certificate_no),
            )
        except Exception:
            logger.warning(
                "certificate_email_failed",
                certificate_no=certificate.certificate_no,
                exc_info=True,
            )

    async def quiz_passed(
        self, actor: "ActorContext", quiz: "Quiz", score: Decimal
    ) -> None:
        await self._notify(
            create_quiz_passed_notification(
                actor.user_id, quiz.course_id, quiz.lesson_id, quiz.title, str(score)
            )
        )

    def verify_url(self, certificate_no: str) -> str:
        return f"{self.app_url}/certificates/verify/{certificate_no}"

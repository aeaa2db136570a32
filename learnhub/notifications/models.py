"""Database models for notifications.

Cassandra table definitions for:
- Notifications: partitioned by user, newest first
- Unread counts: counter per user

Notification types:
- COURSE_COMPLETED: Learner finished every lesson of a course
- CERTIFICATE_ISSUED: Certificate of completion is available
- QUIZ_PASSED: Learner passed a lesson quiz
- SYSTEM: Announcement
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


# ==============================================================================
# Constants
# ==============================================================================

NOTIFICATION_MESSAGE_MAX_LENGTH = 500


class NotificationType(str, Enum):
    """Types of notifications."""

    COURSE_COMPLETED = "course_completed"
    CERTIFICATE_ISSUED = "certificate_issued"
    QUIZ_PASSED = "quiz_passed"
    SYSTEM = "system"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partitioned by user_id for efficient user queries
NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    notification_id UUID,
    type TEXT,
    title TEXT,
    message TEXT,
    reference_id TEXT,
    reference_type TEXT,
    reference_url TEXT,
    course_id UUID,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

UNREAD_COUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_unread_counts (
    user_id UUID PRIMARY KEY,
    count COUNTER
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    UNREAD_COUNT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification entity with full details."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    reference_id: str | None
    reference_type: str | None
    reference_url: str | None
    course_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            reference_id=row.reference_id,
            reference_type=row.reference_type,
            reference_url=row.reference_url,
            course_id=row.course_id,
            is_read=row.is_read or False,
            read_at=row.read_at,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": str(self.notification_id),
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "reference_id": self.reference_id,
            "reference_type": self.reference_type,
            "reference_url": self.reference_url,
            "course_id": str(self.course_id) if self.course_id else None,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat(),
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_notification(
    user_id: UUID,
    notification_type: NotificationType,
    title: str,
    message: str,
    reference_id: str | None = None,
    reference_type: str | None = None,
    reference_url: str | None = None,
    course_id: UUID | None = None,
) -> Notification:
    """Create a new unread notification."""
    return Notification(
        notification_id=uuid4(),
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message[:NOTIFICATION_MESSAGE_MAX_LENGTH],
        reference_id=reference_id,
        reference_type=reference_type,
        reference_url=reference_url,
        course_id=course_id,
        is_read=False,
        read_at=None,
        created_at=datetime.now(UTC),
    )


def create_course_completed_notification(
    user_id: UUID, course_id: UUID, course_title: str
) -> Notification:
    return create_notification(
        user_id=user_id,
        notification_type=NotificationType.COURSE_COMPLETED,
        title="Course completed",
        message=f"You completed every lesson of {course_title}.",
        reference_id=str(course_id),
        reference_type="course",
        reference_url=f"/courses/{course_id}",
        course_id=course_id,
    )


def create_certificate_notification(
    user_id: UUID, course_id: UUID, course_title: str, certificate_no: str
) -> Notification:
    return create_notification(
        user_id=user_id,
        notification_type=NotificationType.CERTIFICATE_ISSUED,
        title="Your certificate is ready",
        message=f"Certificate {certificate_no} for {course_title} was issued.",
        reference_id=certificate_no,
        reference_type="certificate",
        reference_url=f"/certificates/verify/{certificate_no}",
        course_id=course_id,
    )


def create_quiz_passed_notification(
    user_id: UUID,
    course_id: UUID,
    lesson_id: UUID,
    quiz_title: str,
    score: str,
) -> Notification:
    return create_notification(
        user_id=user_id,
        notification_type=NotificationType.QUIZ_PASSED,
        title="Quiz passed",
        message=f"You passed {quiz_title} with {score}%.",
        reference_id=str(lesson_id),
        reference_type="lesson",
        reference_url=f"/courses/{course_id}/lessons/{lesson_id}",
        course_id=course_id,
    )

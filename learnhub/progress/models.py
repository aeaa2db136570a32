"""Database models for enrollments and lesson progress.

Cassandra table definitions for:
- Enrollments: one row per enrollment, keyed by id
- Enrollments by user: (user, course) claim row written with IF NOT EXISTS,
  also carrying the enrollment summary for "my courses" reads
- Lesson progress: per (enrollment, lesson), one partition per enrollment so
  the completion evaluator reads everything it needs in one query
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.courses.models import ensure_utc_aware


class EnrollmentStatus(str, Enum):
    """Enrollment state. COMPLETED is terminal."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    id UUID PRIMARY KEY,
    user_id UUID,
    course_id UUID,
    status TEXT,
    progress_percent INT,
    is_completed BOOLEAN,
    enrolled_at TIMESTAMP,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP,
    last_lesson_id UUID
)
"""

# Partition per user; clustering on course makes (user, course) unique.
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    status TEXT,
    progress_percent INT,
    is_completed BOOLEAN,
    enrolled_at TIMESTAMP,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP,
    last_lesson_id UUID,
    PRIMARY KEY (user_id, course_id)
)
"""

LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    enrollment_id UUID,
    lesson_id UUID,
    user_id UUID,
    course_id UUID,
    watched_seconds INT,
    is_completed BOOLEAN,
    completed_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (enrollment_id, lesson_id)
)
"""

PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
    LESSON_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """A learner's enrollment in a course.

    Attributes:
        id: Enrollment ID
        user_id: Learner
        course_id: Course
        status: NOT_STARTED, IN_PROGRESS or COMPLETED
        progress_percent: Whole-number percentage of published lessons done
        is_completed: Set once the course reaches 100%, never cleared
        enrolled_at: Enrollment timestamp
        started_at: First recorded progress
        completed_at: When the course was completed
        last_lesson_id: Lesson most recently touched
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        id: UUID | None = None,
        status: str = EnrollmentStatus.NOT_STARTED.value,
        progress_percent: int = 0,
        is_completed: bool = False,
        enrolled_at: datetime | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        updated_at: datetime | None = None,
        last_lesson_id: UUID | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.course_id = course_id
        self.status = status
        self.progress_percent = progress_percent or 0
        self.is_completed = bool(is_completed)
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.updated_at = ensure_utc_aware(updated_at)
        self.last_lesson_id = last_lesson_id

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment from an ``enrollments`` or ``enrollments_by_user`` row."""
        enrollment_id = getattr(row, "id", None) or row.enrollment_id
        return cls(
            id=enrollment_id,
            user_id=row.user_id,
            course_id=row.course_id,
            status=row.status,
            progress_percent=row.progress_percent,
            is_completed=row.is_completed,
            enrolled_at=row.enrolled_at,
            started_at=row.started_at,
            completed_at=row.completed_at,
            updated_at=row.updated_at,
            last_lesson_id=row.last_lesson_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "status": self.status,
            "progress_percent": self.progress_percent,
            "is_completed": self.is_completed,
            "enrolled_at": self.enrolled_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "last_lesson_id": self.last_lesson_id,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment {self.user_id} in {self.course_id}: "
            f"{self.progress_percent}%>"
        )


class LessonProgress:
    """Watch state of one lesson within an enrollment."""

    def __init__(
        self,
        enrollment_id: UUID,
        lesson_id: UUID,
        user_id: UUID,
        course_id: UUID,
        watched_seconds: int = 0,
        is_completed: bool = False,
        completed_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.enrollment_id = enrollment_id
        self.lesson_id = lesson_id
        self.user_id = user_id
        self.course_id = course_id
        self.watched_seconds = watched_seconds or 0
        self.is_completed = bool(is_completed)
        self.completed_at = ensure_utc_aware(completed_at)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "LessonProgress":
        return cls(
            enrollment_id=row.enrollment_id,
            lesson_id=row.lesson_id,
            user_id=row.user_id,
            course_id=row.course_id,
            watched_seconds=row.watched_seconds,
            is_completed=row.is_completed,
            completed_at=row.completed_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def apply_update(
        self,
        watched_seconds: int | None,
        completed: bool | None,
        now: datetime,
    ) -> None:
        """Apply a partial update; fields left as None are untouched.

        The first completion timestamp is kept when a completed lesson is
        marked complete again.
        """
        if watched_seconds is not None:
            self.watched_seconds = watched_seconds
        if completed is True:
            if not self.is_completed or self.completed_at is None:
                self.completed_at = now
            self.is_completed = True
        elif completed is False:
            self.is_completed = False
            self.completed_at = None
        self.updated_at = now

    def to_dict(self) -> dict[str, Any]:
        return {
            "enrollment_id": self.enrollment_id,
            "lesson_id": self.lesson_id,
            "watched_seconds": self.watched_seconds,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        state = "done" if self.is_completed else f"{self.watched_seconds}s"
        return f"<LessonProgress {self.lesson_id} {state}>"

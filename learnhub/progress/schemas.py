"""Pydantic schemas for enrollments and progress.

Request and response models for:
- Free enrollment and enrollment reads
- Lesson progress updates (watched time, completion)
- Course progress overview
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnhub.progress.models import Enrollment, EnrollmentStatus, LessonProgress


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Request to enroll in a free course."""

    course_id: UUID = Field(..., description="Course UUID")


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    progress_percent: int = Field(ge=0, le=100)
    is_completed: bool
    enrolled_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_lesson_id: UUID | None = None

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        return cls(**entity.to_dict())


class EnrollmentListResponse(BaseModel):
    items: list[EnrollmentResponse]
    total: int


# ==============================================================================
# Progress Schemas
# ==============================================================================


class UpdateLessonProgressRequest(BaseModel):
    """Partial progress update; omitted fields keep their stored value."""

    enrollment_id: UUID = Field(..., description="Enrollment UUID")
    watched_seconds: int | None = Field(
        None, ge=0, description="Seconds of the lesson watched so far"
    )
    is_completed: bool | None = Field(None, description="Completion flag")


class LessonProgressResponse(BaseModel):
    """Stored watch state for one lesson."""

    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    enrollment_id: UUID | None = None
    watched_seconds: int = 0
    is_completed: bool = False
    completed_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: LessonProgress) -> "LessonProgressResponse":
        return cls(
            lesson_id=entity.lesson_id,
            enrollment_id=entity.enrollment_id,
            watched_seconds=entity.watched_seconds,
            is_completed=entity.is_completed,
            completed_at=entity.completed_at,
            updated_at=entity.updated_at,
        )


class ProgressUpdateResponse(BaseModel):
    """Result of a progress update: the lesson state and the course total."""

    progress: LessonProgressResponse
    overall_progress: int = Field(ge=0, le=100)
    completed_lessons: int
    total_lessons: int
    course_completed: bool
    certificate_no: str | None = Field(
        None, description="Certificate of the course once it is completed"
    )


class CourseProgressResponse(BaseModel):
    """Course progress overview for the caller."""

    course_id: UUID
    enrollment_id: UUID
    status: EnrollmentStatus
    overall_progress: int = Field(ge=0, le=100)
    is_completed: bool
    completed_at: datetime | None = None
    total_lessons: int
    completed_lessons: int
    lessons: dict[UUID, LessonProgressResponse] = Field(
        default_factory=dict, description="Progress keyed by lesson id"
    )

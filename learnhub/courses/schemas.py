"""Pydantic schemas for the course catalogue."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnhub.courses.models import Chapter, ContentStatus, ContentType, Course, Lesson


# ==============================================================================
# Requests
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., min_length=3, max_length=200, description="Course title")
    description: str | None = Field(
        None, max_length=5000, description="Course description"
    )
    price: Decimal = Field(Decimal(0), ge=0, description="Course price (0 = free)")


class CreateChapterRequest(BaseModel):
    """Chapter creation request."""

    title: str = Field(..., min_length=1, max_length=200)
    position: int | None = Field(
        None, ge=0, description="Position in course (appended when omitted)"
    )
    is_published: bool = False


class CreateLessonRequest(BaseModel):
    """Lesson creation request."""

    title: str = Field(..., min_length=1, max_length=200)
    content_type: ContentType = ContentType.VIDEO
    duration_seconds: int | None = Field(None, ge=0)
    position: int | None = Field(
        None, ge=0, description="Position in chapter (appended when omitted)"
    )
    is_published: bool = False


class SetPublishedRequest(BaseModel):
    """Publish or unpublish a chapter or lesson."""

    is_published: bool


# ==============================================================================
# Responses
# ==============================================================================


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    description: str | None = None
    instructor_id: UUID
    status: ContentStatus
    price: Decimal
    is_free: bool
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, course: Course) -> "CourseResponse":
        return cls(**course.to_dict())


class LessonResponse(BaseModel):
    """Lesson response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    chapter_id: UUID
    title: str
    position: int
    content_type: ContentType
    duration_seconds: int | None = None
    is_published: bool

    @classmethod
    def from_entity(cls, lesson: Lesson) -> "LessonResponse":
        return cls(**lesson.to_dict())


class ChapterResponse(BaseModel):
    """Chapter response, with its lessons when part of a curriculum."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    position: int
    is_published: bool
    lessons: list[LessonResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(
        cls, chapter: Chapter, lessons: list[Lesson] | None = None
    ) -> "ChapterResponse":
        return cls(
            **chapter.to_dict(),
            lessons=[LessonResponse.from_entity(lesson) for lesson in lessons or []],
        )


class CurriculumResponse(BaseModel):
    """Published structure of a course."""

    course: CourseResponse
    chapters: list[ChapterResponse]
    total_lessons: int

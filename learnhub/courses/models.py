"""Database models for the course catalogue.

Cassandra table definitions for:
- Courses: main course table
- Chapters: ordered sections of a course, partitioned by course
- Lessons: partitioned by course so a whole curriculum is one read
- Lookup table: lesson id -> course/chapter for progress and quiz calls
"""

import re
import unicodedata
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class ContentStatus(str, Enum):
    """Course publication status."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentType(str, Enum):
    """Lesson content type."""

    VIDEO = "video"
    TEXT = "text"
    QUIZ = "quiz"
    PDF = "pdf"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    slug TEXT,
    description TEXT,
    instructor_id UUID,
    status TEXT,
    price DECIMAL,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

CHAPTER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.chapters (
    course_id UUID,
    chapter_id UUID,
    title TEXT,
    position INT,
    is_published BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, chapter_id)
)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    course_id UUID,
    lesson_id UUID,
    chapter_id UUID,
    title TEXT,
    position INT,
    content_type TEXT,
    duration_seconds INT,
    is_published BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, lesson_id)
)
"""

LESSONS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons_by_id (
    lesson_id UUID PRIMARY KEY,
    course_id UUID,
    chapter_id UUID
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    CHAPTER_TABLE_CQL,
    LESSON_TABLE_CQL,
    LESSONS_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def generate_slug(title: str) -> str:
    """Generate URL-friendly slug from title."""
    slug = unicodedata.normalize("NFKD", title)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    return re.sub(r"[-\s]+", "-", slug)


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course entity.

    Attributes:
        id: Unique identifier (UUID)
        title: Course title
        slug: URL-friendly identifier
        description: Course description
        instructor_id: Owning instructor
        status: Publication status (draft, published, archived)
        price: Course price (0 = free)
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        slug: str | None = None,
        description: str | None = None,
        instructor_id: UUID | None = None,
        status: str = ContentStatus.DRAFT.value,
        price: Decimal | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.slug = slug or generate_slug(title)
        self.description = description
        self.instructor_id = instructor_id
        self.status = status
        self.price = price if price is not None else Decimal(0)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            slug=row.slug,
            description=row.description,
            instructor_id=row.instructor_id,
            status=row.status,
            price=row.price,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @property
    def is_published(self) -> bool:
        return self.status == ContentStatus.PUBLISHED.value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "instructor_id": self.instructor_id,
            "status": self.status,
            "price": self.price,
            "is_free": self.is_free,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.title} ({self.status})>"


class Chapter:
    """Ordered section of a course. Only published chapters count."""

    def __init__(
        self,
        course_id: UUID,
        title: str = "",
        position: int = 0,
        is_published: bool = False,
        id: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.title = title.strip()
        self.position = position
        self.is_published = bool(is_published)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Chapter":
        return cls(
            id=row.chapter_id,
            course_id=row.course_id,
            title=row.title,
            position=row.position or 0,
            is_published=row.is_published,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "position": self.position,
            "is_published": self.is_published,
        }

    def __repr__(self) -> str:
        return f"<Chapter {self.title} #{self.position}>"


class Lesson:
    """Lesson entity.

    Attributes:
        id: Unique identifier (UUID)
        course_id: Course the lesson belongs to
        chapter_id: Chapter the lesson belongs to
        title: Lesson title
        position: Order within the chapter
        content_type: Type of content (video, text, quiz, pdf)
        duration_seconds: Duration for video content
        is_published: Whether learners can see the lesson
    """

    def __init__(
        self,
        course_id: UUID,
        chapter_id: UUID,
        title: str = "",
        position: int = 0,
        content_type: str = ContentType.VIDEO.value,
        duration_seconds: int | None = None,
        is_published: bool = False,
        id: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.chapter_id = chapter_id
        self.title = title.strip()
        self.position = position
        self.content_type = content_type
        self.duration_seconds = duration_seconds
        self.is_published = bool(is_published)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        return cls(
            id=row.lesson_id,
            course_id=row.course_id,
            chapter_id=row.chapter_id,
            title=row.title,
            position=row.position or 0,
            content_type=row.content_type,
            duration_seconds=row.duration_seconds,
            is_published=row.is_published,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "chapter_id": self.chapter_id,
            "title": self.title,
            "position": self.position,
            "content_type": self.content_type,
            "duration_seconds": self.duration_seconds,
            "is_published": self.is_published,
        }

    def __repr__(self) -> str:
        return f"<Lesson {self.title} ({self.content_type})>"

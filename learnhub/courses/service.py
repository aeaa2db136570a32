"""Course catalogue service layer.

Business logic for:
- Course creation and publishing
- Chapter and lesson authoring (owner or admin only)
- Curriculum reads, including the published lesson set used for completion
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.core.errors import ForbiddenError, NotFoundError
from learnhub.courses.models import Chapter, ContentStatus, Course, Lesson
from learnhub.courses.schemas import (
    CreateChapterRequest,
    CreateCourseRequest,
    CreateLessonRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.auth.context import ActorContext

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseNotFoundError(NotFoundError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ChapterNotFoundError(NotFoundError):
    def __init__(self, message: str = "Chapter not found"):
        super().__init__(message, "chapter_not_found")


class LessonNotFoundError(NotFoundError):
    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class NotCourseOwnerError(ForbiddenError):
    def __init__(self, message: str = "Only the course instructor can do this"):
        super().__init__(message, "not_course_owner")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for courses, chapters and lessons."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, slug, description, instructor_id, status, price,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_course_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses SET status = ?, updated_at = ?
            WHERE id = ?
        """)

        self._get_chapters = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapters WHERE course_id = ?
        """)

        self._get_chapter = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapters
            WHERE course_id = ? AND chapter_id = ?
        """)

        self._insert_chapter = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.chapters
            (course_id, chapter_id, title, position, is_published,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_chapter_published = self.session.prepare(f"""
            UPDATE {self.keyspace}.chapters SET is_published = ?, updated_at = ?
            WHERE course_id = ? AND chapter_id = ?
        """)

        self._get_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE course_id = ?
        """)

        self._get_lesson = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons
            WHERE course_id = ? AND lesson_id = ?
        """)

        self._insert_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons
            (course_id, lesson_id, chapter_id, title, position, content_type,
             duration_seconds, is_published, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_lesson_published = self.session.prepare(f"""
            UPDATE {self.keyspace}.lessons SET is_published = ?, updated_at = ?
            WHERE course_id = ? AND lesson_id = ?
        """)

        self._get_lesson_lookup = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons_by_id WHERE lesson_id = ?
        """)

        self._insert_lesson_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons_by_id (lesson_id, course_id, chapter_id)
            VALUES (?, ?, ?)
        """)

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def create_course(
        self, actor: "ActorContext", data: CreateCourseRequest
    ) -> Course:
        """Create a draft course owned by the caller."""
        course = Course(
            title=data.title,
            description=data.description,
            instructor_id=actor.user_id,
            price=data.price,
        )

        await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.title,
                course.slug,
                course.description,
                course.instructor_id,
                course.status,
                course.price,
                course.created_at,
                course.updated_at,
            ],
        )

        logger.info(
            "course_created",
            course_id=str(course.id),
            instructor_id=str(actor.user_id),
        )
        return course

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: UUID) -> Course:
        """Get a course or raise CourseNotFoundError."""
        course = await self.get_course(course_id)
        if not course:
            raise CourseNotFoundError()
        return course

    async def publish_course(self, actor: "ActorContext", course_id: UUID) -> Course:
        course = await self._require_owned_course(actor, course_id)

        course.status = ContentStatus.PUBLISHED.value
        course.updated_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_course_status,
            [course.status, course.updated_at, course.id],
        )

        logger.info("course_published", course_id=str(course.id))
        return course

    def ensure_can_manage(self, actor: "ActorContext", course: Course) -> None:
        """Raise NotCourseOwnerError unless the caller owns the course or is admin."""
        if actor.is_admin or course.instructor_id == actor.user_id:
            return
        raise NotCourseOwnerError()

    async def _require_owned_course(
        self, actor: "ActorContext", course_id: UUID
    ) -> Course:
        course = await self.require_course(course_id)
        self.ensure_can_manage(actor, course)
        return course

    # ==========================================================================
    # Chapters
    # ==========================================================================

    async def list_chapters(self, course_id: UUID) -> list[Chapter]:
        """All chapters of a course ordered by position."""
        result = await self.session.aexecute(self._get_chapters, [course_id])
        chapters = [Chapter.from_row(row) for row in result]
        return sorted(chapters, key=lambda c: (c.position, c.created_at))

    async def add_chapter(
        self, actor: "ActorContext", course_id: UUID, data: CreateChapterRequest
    ) -> Chapter:
        await self._require_owned_course(actor, course_id)

        position = data.position
        if position is None:
            position = len(await self.list_chapters(course_id))

        chapter = Chapter(
            course_id=course_id,
            title=data.title,
            position=position,
            is_published=data.is_published,
        )
        await self.session.aexecute(
            self._insert_chapter,
            [
                chapter.course_id,
                chapter.id,
                chapter.title,
                chapter.position,
                chapter.is_published,
                chapter.created_at,
                chapter.updated_at,
            ],
        )

        logger.info(
            "chapter_created", course_id=str(course_id), chapter_id=str(chapter.id)
        )
        return chapter

    async def set_chapter_published(
        self,
        actor: "ActorContext",
        course_id: UUID,
        chapter_id: UUID,
        is_published: bool,
    ) -> Chapter:
        await self._require_owned_course(actor, course_id)

        result = await self.session.aexecute(
            self._get_chapter, [course_id, chapter_id]
        )
        row = result.one()
        if not row:
            raise ChapterNotFoundError()

        chapter = Chapter.from_row(row)
        chapter.is_published = is_published
        chapter.updated_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_chapter_published,
            [is_published, chapter.updated_at, course_id, chapter_id],
        )

        logger.info(
            "chapter_publication_changed",
            chapter_id=str(chapter_id),
            is_published=is_published,
        )
        return chapter

    # ==========================================================================
    # Lessons
    # ==========================================================================

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        """All lessons of a course, published or not."""
        result = await self.session.aexecute(self._get_lessons, [course_id])
        return [Lesson.from_row(row) for row in result]

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        """Resolve a lesson through the id lookup table."""
        result = await self.session.aexecute(self._get_lesson_lookup, [lesson_id])
        ref = result.one()
        if not ref:
            return None

        result = await self.session.aexecute(
            self._get_lesson, [ref.course_id, lesson_id]
        )
        row = result.one()
        return Lesson.from_row(row) if row else None

    async def require_lesson(self, lesson_id: UUID) -> Lesson:
        lesson = await self.get_lesson(lesson_id)
        if not lesson:
            raise LessonNotFoundError()
        return lesson

    async def add_lesson(
        self,
        actor: "ActorContext",
        course_id: UUID,
        chapter_id: UUID,
        data: CreateLessonRequest,
    ) -> Lesson:
        await self._require_owned_course(actor, course_id)

        chapter_result = await self.session.aexecute(
            self._get_chapter, [course_id, chapter_id]
        )
        if not chapter_result.one():
            raise ChapterNotFoundError()

        position = data.position
        if position is None:
            siblings = [
                lesson
                for lesson in await self.list_lessons(course_id)
                if lesson.chapter_id == chapter_id
            ]
            position = len(siblings)

        lesson = Lesson(
            course_id=course_id,
            chapter_id=chapter_id,
            title=data.title,
            position=position,
            content_type=data.content_type.value,
            duration_seconds=data.duration_seconds,
            is_published=data.is_published,
        )

        await self.session.aexecute(
            self._insert_lesson,
            [
                lesson.course_id,
                lesson.id,
                lesson.chapter_id,
                lesson.title,
                lesson.position,
                lesson.content_type,
                lesson.duration_seconds,
                lesson.is_published,
                lesson.created_at,
                lesson.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_lesson_lookup, [lesson.id, course_id, chapter_id]
        )

        logger.info(
            "lesson_created",
            course_id=str(course_id),
            chapter_id=str(chapter_id),
            lesson_id=str(lesson.id),
        )
        return lesson

    async def set_lesson_published(
        self, actor: "ActorContext", lesson_id: UUID, is_published: bool
    ) -> Lesson:
        lesson = await self.require_lesson(lesson_id)
        await self._require_owned_course(actor, lesson.course_id)

        lesson.is_published = is_published
        lesson.updated_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_lesson_published,
            [is_published, lesson.updated_at, lesson.course_id, lesson.id],
        )

        logger.info(
            "lesson_publication_changed",
            lesson_id=str(lesson_id),
            is_published=is_published,
        )
        return lesson

    # ==========================================================================
    # Curriculum
    # ==========================================================================

    async def get_curriculum(
        self, course_id: UUID, published_only: bool = True
    ) -> list[tuple[Chapter, list[Lesson]]]:
        """Chapters in order, each with its lessons in order.

        With ``published_only`` a lesson is included only when both it and
        its chapter are published.
        """
        chapters = await self.list_chapters(course_id)
        lessons = await self.list_lessons(course_id)

        by_chapter: dict[UUID, list[Lesson]] = {}
        for lesson in lessons:
            if published_only and not lesson.is_published:
                continue
            by_chapter.setdefault(lesson.chapter_id, []).append(lesson)

        curriculum = []
        for chapter in chapters:
            if published_only and not chapter.is_published:
                continue
            chapter_lessons = sorted(
                by_chapter.get(chapter.id, []),
                key=lambda lesson: (lesson.position, lesson.created_at),
            )
            curriculum.append((chapter, chapter_lessons))
        return curriculum

    async def get_published_lesson_ids(self, course_id: UUID) -> list[UUID]:
        """Ids of published lessons inside published chapters."""
        curriculum = await self.get_curriculum(course_id, published_only=True)
        return [lesson.id for _, lessons in curriculum for lesson in lessons]

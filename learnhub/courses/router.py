"""Course catalogue API endpoints.

Provides routes for:
- Public course detail and curriculum
- Instructor authoring of courses, chapters and lessons
"""

from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import InstructorActor
from learnhub.courses.dependencies import CourseServiceDep
from learnhub.courses.schemas import (
    ChapterResponse,
    CourseResponse,
    CreateChapterRequest,
    CreateCourseRequest,
    CreateLessonRequest,
    CurriculumResponse,
    LessonResponse,
    SetPublishedRequest,
)


router = APIRouter(prefix="/v1/courses", tags=["courses"])
instructor_router = APIRouter(prefix="/v1/instructor", tags=["instructor"])


# ==============================================================================
# Public catalogue
# ==============================================================================


@router.get("/{course_id}", response_model=CourseResponse, summary="Get course")
async def get_course(course_id: UUID, service: CourseServiceDep) -> CourseResponse:
    course = await service.require_course(course_id)
    return CourseResponse.from_entity(course)


@router.get(
    "/{course_id}/curriculum",
    response_model=CurriculumResponse,
    summary="Published chapters and lessons",
)
async def get_curriculum(
    course_id: UUID, service: CourseServiceDep
) -> CurriculumResponse:
    """Published chapters in order with their published lessons."""
    course = await service.require_course(course_id)
    curriculum = await service.get_curriculum(course_id, published_only=True)

    return CurriculumResponse(
        course=CourseResponse.from_entity(course),
        chapters=[
            ChapterResponse.from_entity(chapter, lessons)
            for chapter, lessons in curriculum
        ],
        total_lessons=sum(len(lessons) for _, lessons in curriculum),
    )


# ==============================================================================
# Instructor authoring
# ==============================================================================


@instructor_router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest, service: CourseServiceDep, actor: InstructorActor
) -> CourseResponse:
    course = await service.create_course(actor, data)
    return CourseResponse.from_entity(course)


@instructor_router.post(
    "/courses/{course_id}/publish",
    response_model=CourseResponse,
    summary="Publish course",
)
async def publish_course(
    course_id: UUID, service: CourseServiceDep, actor: InstructorActor
) -> CourseResponse:
    course = await service.publish_course(actor, course_id)
    return CourseResponse.from_entity(course)


@instructor_router.post(
    "/courses/{course_id}/chapters",
    response_model=ChapterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add chapter",
)
async def add_chapter(
    course_id: UUID,
    data: CreateChapterRequest,
    service: CourseServiceDep,
    actor: InstructorActor,
) -> ChapterResponse:
    chapter = await service.add_chapter(actor, course_id, data)
    return ChapterResponse.from_entity(chapter)


@instructor_router.patch(
    "/courses/{course_id}/chapters/{chapter_id}",
    response_model=ChapterResponse,
    summary="Publish or unpublish chapter",
)
async def set_chapter_published(
    course_id: UUID,
    chapter_id: UUID,
    data: SetPublishedRequest,
    service: CourseServiceDep,
    actor: InstructorActor,
) -> ChapterResponse:
    chapter = await service.set_chapter_published(
        actor, course_id, chapter_id, data.is_published
    )
    return ChapterResponse.from_entity(chapter)


@instructor_router.post(
    "/courses/{course_id}/chapters/{chapter_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add lesson",
)
async def add_lesson(
    course_id: UUID,
    chapter_id: UUID,
    data: CreateLessonRequest,
    service: CourseServiceDep,
    actor: InstructorActor,
) -> LessonResponse:
    lesson = await service.add_lesson(actor, course_id, chapter_id, data)
    return LessonResponse.from_entity(lesson)


@instructor_router.patch(
    "/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Publish or unpublish lesson",
)
async def set_lesson_published(
    lesson_id: UUID,
    data: SetPublishedRequest,
    service: CourseServiceDep,
    actor: InstructorActor,
) -> LessonResponse:
    lesson = await service.set_lesson_published(actor, lesson_id, data.is_published)
    return LessonResponse.from_entity(lesson)

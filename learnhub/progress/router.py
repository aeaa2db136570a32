"""Enrollment and progress API endpoints.

Provides routes for:
- Free enrollment and enrollment reads
- Lesson progress updates and reads
- Course progress overview
"""

from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import CurrentActor
from learnhub.progress.dependencies import ProgressServiceDep
from learnhub.progress.models import EnrollmentStatus
from learnhub.progress.schemas import (
    CourseProgressResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    LessonProgressResponse,
    ProgressUpdateResponse,
    UpdateLessonProgressRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a free course",
)
async def enroll(
    data: EnrollRequest, service: ProgressServiceDep, actor: CurrentActor
) -> EnrollmentResponse:
    """Enroll in a published free course. Paid courses enroll via purchase."""
    enrollment = await service.enroll_free(actor, data.course_id)
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get(
    "/my", response_model=EnrollmentListResponse, summary="My enrollments"
)
async def list_my_enrollments(
    service: ProgressServiceDep, actor: CurrentActor
) -> EnrollmentListResponse:
    enrollments = await service.list_user_enrollments(actor.user_id)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


@enrollments_router.get(
    "/{enrollment_id}", response_model=EnrollmentResponse, summary="Get enrollment"
)
async def get_enrollment(
    enrollment_id: UUID, service: ProgressServiceDep, actor: CurrentActor
) -> EnrollmentResponse:
    enrollment = await service.get_own_enrollment(actor, enrollment_id)
    return EnrollmentResponse.from_entity(enrollment)


# ==============================================================================
# Progress Endpoints
# ==============================================================================


@router.patch(
    "/lessons/{lesson_id}",
    response_model=ProgressUpdateResponse,
    summary="Record lesson progress",
)
async def update_lesson_progress(
    lesson_id: UUID,
    data: UpdateLessonProgressRequest,
    service: ProgressServiceDep,
    actor: CurrentActor,
) -> ProgressUpdateResponse:
    """Update watched time and/or completion of a lesson.

    The course percentage is recomputed on every call; reaching 100%
    completes the enrollment and issues the certificate.
    """
    update = await service.record_progress(
        actor,
        enrollment_id=data.enrollment_id,
        lesson_id=lesson_id,
        watched_seconds=data.watched_seconds,
        completed=data.is_completed,
    )

    return ProgressUpdateResponse(
        progress=LessonProgressResponse.from_entity(update.progress),
        overall_progress=update.outcome.progress_percent,
        completed_lessons=update.outcome.completed_lessons,
        total_lessons=update.outcome.total_lessons,
        course_completed=update.enrollment.is_completed,
        certificate_no=update.certificate_no,
    )


@router.get(
    "/lessons/{lesson_id}",
    response_model=LessonProgressResponse,
    summary="Get lesson progress",
)
async def get_lesson_progress(
    lesson_id: UUID, service: ProgressServiceDep, actor: CurrentActor
) -> LessonProgressResponse:
    """Stored progress for a lesson, or an empty record if never touched."""
    enrollment, progress = await service.get_lesson_progress_for(actor, lesson_id)
    if progress is None:
        return LessonProgressResponse(lesson_id=lesson_id, enrollment_id=enrollment.id)
    return LessonProgressResponse.from_entity(progress)


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID, service: ProgressServiceDep, actor: CurrentActor
) -> CourseProgressResponse:
    overview = await service.get_course_progress(actor, course_id)
    enrollment = overview.enrollment

    return CourseProgressResponse(
        course_id=course_id,
        enrollment_id=enrollment.id,
        status=EnrollmentStatus(enrollment.status),
        overall_progress=enrollment.progress_percent,
        is_completed=enrollment.is_completed,
        completed_at=enrollment.completed_at,
        total_lessons=overview.total_lessons,
        completed_lessons=overview.completed_lessons,
        lessons={
            lesson_id: LessonProgressResponse.from_entity(progress)
            for lesson_id, progress in overview.lessons.items()
        },
    )

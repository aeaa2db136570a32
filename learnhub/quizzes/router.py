"""Quiz API endpoints.

Provides routes for:
- Quiz read per lesson, authoring and deletion
- Attempt start and submission
- Attempt history
"""

from uuid import UUID

from fastapi import APIRouter, status

from learnhub.auth.dependencies import CurrentActor, InstructorActor
from learnhub.quizzes.dependencies import QuizServiceDep
from learnhub.quizzes.schemas import (
    AttemptHistoryResponse,
    AttemptResponse,
    AttemptSummaryResponse,
    QuestionResult,
    QuizResponse,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
    UpsertQuizRequest,
)


router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])


# ==============================================================================
# Quiz Endpoints
# ==============================================================================


@router.get(
    "/lessons/{lesson_id}", response_model=QuizResponse, summary="Get lesson quiz"
)
async def get_lesson_quiz(
    lesson_id: UUID, service: QuizServiceDep, actor: CurrentActor
) -> QuizResponse:
    """Quiz of a lesson. Correct answers are only shown to its instructors."""
    view = await service.get_quiz_for_lesson(actor, lesson_id)
    return QuizResponse.from_entity(view.quiz, view.questions, view.reveal_answers)


@router.put(
    "/lessons/{lesson_id}", response_model=QuizResponse, summary="Save lesson quiz"
)
async def upsert_lesson_quiz(
    lesson_id: UUID,
    data: UpsertQuizRequest,
    service: QuizServiceDep,
    actor: InstructorActor,
) -> QuizResponse:
    """Create or replace the quiz of a lesson, including all its questions."""
    view = await service.upsert_quiz(actor, lesson_id, data)
    return QuizResponse.from_entity(view.quiz, view.questions, view.reveal_answers)


@router.delete(
    "/lessons/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete lesson quiz",
)
async def delete_lesson_quiz(
    lesson_id: UUID, service: QuizServiceDep, actor: InstructorActor
) -> None:
    await service.delete_quiz(actor, lesson_id)


# ==============================================================================
# Attempt Endpoints
# ==============================================================================


@router.post(
    "/{quiz_id}/attempts",
    response_model=AttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start attempt",
)
async def start_attempt(
    quiz_id: UUID, service: QuizServiceDep, actor: CurrentActor
) -> AttemptResponse:
    """Start an attempt; an unsubmitted attempt is returned instead if one exists."""
    started = await service.start_attempt(actor, quiz_id)
    return AttemptResponse.from_entity(started.attempt, started.quiz, started.resumed)


@router.post(
    "/attempts/{attempt_id}/submit",
    response_model=SubmitAttemptResponse,
    summary="Submit attempt",
)
async def submit_attempt(
    attempt_id: UUID,
    data: SubmitAttemptRequest,
    service: QuizServiceDep,
    actor: CurrentActor,
) -> SubmitAttemptResponse:
    """Grade an attempt.

    Passing marks the quiz's lesson complete, which can complete the course
    and issue its certificate.
    """
    result = await service.submit_attempt(actor, attempt_id, data.answers)
    grade = result.grade
    progress = result.progress

    return SubmitAttemptResponse(
        attempt_id=result.attempt.id,
        score=grade.score,
        passed=grade.passed,
        passing_score=result.quiz.passing_score,
        earned_points=grade.earned_points,
        total_points=grade.total_points,
        total_questions=len(grade.answers),
        correct_answers=grade.correct_count,
        time_spent_seconds=result.attempt.time_spent_seconds or 0,
        completed_at=result.attempt.completed_at,
        lesson_completed=progress is not None,
        course_progress=progress.outcome.progress_percent if progress else None,
        certificate_no=progress.certificate_no if progress else None,
        results=(
            [QuestionResult.from_graded(graded) for graded in grade.answers]
            if result.quiz.show_results
            else None
        ),
    )


@router.get(
    "/lessons/{lesson_id}/attempts",
    response_model=AttemptHistoryResponse,
    summary="My attempts",
)
async def list_attempts(
    lesson_id: UUID, service: QuizServiceDep, actor: CurrentActor
) -> AttemptHistoryResponse:
    history = await service.list_attempts(actor, lesson_id)
    return AttemptHistoryResponse(
        quiz_id=history.quiz.id,
        attempts=[AttemptSummaryResponse.from_entity(a) for a in history.attempts],
        best_score=history.best_score,
        has_passed=history.has_passed,
    )

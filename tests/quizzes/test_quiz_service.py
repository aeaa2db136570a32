"""Tests for QuizService with a mocked session and collaborators."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from learnhub.auth.context import ActorContext
from learnhub.auth.permissions import UserRole
from learnhub.courses.models import Course, Lesson
from learnhub.courses.service import NotCourseOwnerError
from learnhub.progress.models import Enrollment
from learnhub.quizzes.models import (
    AttemptSummary,
    Quiz,
    QuizAttempt,
    QuizOption,
    QuizQuestion,
)
from learnhub.quizzes.schemas import UpsertQuizRequest
from learnhub.quizzes.service import (
    AttemptAlreadySubmittedError,
    AttemptNotFoundError,
    NotEnrolledError,
    QuizService,
)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def course_service() -> MagicMock:
    service = MagicMock()
    service.get_course = AsyncMock(return_value=None)
    service.require_course = AsyncMock()
    service.require_lesson = AsyncMock()
    return service


@pytest.fixture
def progress_service() -> MagicMock:
    service = MagicMock()
    service.find_enrollment = AsyncMock(return_value=None)
    service.mark_lesson_complete = AsyncMock()
    return service


@pytest.fixture
def history() -> MagicMock:
    attempt_history = MagicMock()
    attempt_history.record = AsyncMock()
    attempt_history.list_for_quiz = AsyncMock(return_value=[])
    return attempt_history


@pytest.fixture
def notifier() -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.quiz_passed = AsyncMock()
    return dispatcher


@pytest.fixture
def service(mock_session, course_service, progress_service, history, notifier):
    return QuizService(
        session=mock_session,
        keyspace="learnhub_test",
        course_service=course_service,
        progress_service=progress_service,
        history=history,
        notifier=notifier,
        default_passing_score=70,
    )


@pytest.fixture
def quiz() -> Quiz:
    return Quiz(lesson_id=uuid4(), course_id=uuid4(), title="Checkpoint")


@pytest.fixture
def questions(quiz: Quiz) -> list[QuizQuestion]:
    return [
        QuizQuestion(
            quiz_id=quiz.id,
            prompt=f"Question {position}",
            options=[
                QuizOption(id="a", text="Right", is_correct=True),
                QuizOption(id="b", text="Wrong"),
            ],
            position=position,
        )
        for position in range(2)
    ]


@pytest.fixture
def attempt(quiz: Quiz, student: ActorContext) -> QuizAttempt:
    return QuizAttempt(
        quiz_id=quiz.id,
        user_id=student.user_id,
        course_id=quiz.course_id,
        lesson_id=quiz.lesson_id,
        started_at=datetime.now(UTC) - timedelta(minutes=3),
    )


@pytest.fixture
def loaded(service, quiz, questions, attempt):
    """Service whose reads return the quiz, its questions and the attempt."""
    service.get_attempt = AsyncMock(return_value=attempt)
    service.require_quiz = AsyncMock(return_value=quiz)
    service.list_questions = AsyncMock(return_value=questions)
    return service


# ==============================================================================
# Submission
# ==============================================================================


class TestSubmitAttempt:
    @pytest.mark.asyncio
    async def test_foreign_attempt_is_not_found(self, loaded, attempt) -> None:
        stranger = ActorContext(user_id=uuid4(), role=UserRole.STUDENT)

        with pytest.raises(AttemptNotFoundError):
            await loaded.submit_attempt(stranger, attempt.id, {})

    @pytest.mark.asyncio
    async def test_submitted_attempt_conflicts(self, loaded, attempt, student) -> None:
        attempt.completed_at = datetime.now(UTC)

        with pytest.raises(AttemptAlreadySubmittedError):
            await loaded.submit_attempt(student, attempt.id, {})

    @pytest.mark.asyncio
    async def test_concurrent_submission_loses(
        self, loaded, attempt, questions, student, mock_session, make_result
    ) -> None:
        mock_session.aexecute.return_value = make_result(was_applied=False)

        with patch("learnhub.quizzes.service.BatchStatement"):
            with pytest.raises(AttemptAlreadySubmittedError):
                await loaded.submit_attempt(
                    student, attempt.id, {questions[0].id: "a"}
                )

    @pytest.mark.asyncio
    async def test_failing_attempt(
        self, loaded, attempt, questions, student, progress_service, notifier, history
    ) -> None:
        with patch("learnhub.quizzes.service.BatchStatement") as batch_cls:
            result = await loaded.submit_attempt(
                student, attempt.id, {questions[0].id: "a", questions[1].id: "b"}
            )

        assert result.grade.score == Decimal("50.00")
        assert result.grade.passed is False
        assert result.progress is None
        assert result.attempt.is_submitted
        assert result.attempt.time_spent_seconds >= 180
        # one conditional update plus one row per question
        assert batch_cls.return_value.add.call_count == 3
        history.record.assert_awaited_once()
        progress_service.mark_lesson_complete.assert_not_awaited()
        notifier.quiz_passed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_passing_attempt_completes_lesson(
        self,
        loaded,
        quiz,
        attempt,
        questions,
        student,
        progress_service,
        notifier,
    ) -> None:
        enrollment = Enrollment(user_id=student.user_id, course_id=quiz.course_id)
        progress_service.find_enrollment.return_value = enrollment

        with patch("learnhub.quizzes.service.BatchStatement"):
            result = await loaded.submit_attempt(
                student, attempt.id, {q.id: "a" for q in questions}
            )

        assert result.grade.score == Decimal("100.00")
        assert result.grade.passed is True
        assert result.progress is progress_service.mark_lesson_complete.return_value
        progress_service.mark_lesson_complete.assert_awaited_once_with(
            student, enrollment, quiz.lesson_id
        )
        notifier.quiz_passed.assert_awaited_once_with(
            student, quiz, Decimal("100.00")
        )


# ==============================================================================
# Attempts
# ==============================================================================


class TestStartAttempt:
    @pytest.mark.asyncio
    async def test_requires_enrollment(self, service, quiz, student) -> None:
        service.require_quiz = AsyncMock(return_value=quiz)

        with pytest.raises(NotEnrolledError):
            await service.start_attempt(student, quiz.id)

    @pytest.mark.asyncio
    async def test_open_attempt_is_reused(
        self, service, quiz, attempt, student, progress_service, history, mock_session
    ) -> None:
        service.require_quiz = AsyncMock(return_value=quiz)
        service.get_attempt = AsyncMock(return_value=attempt)
        progress_service.find_enrollment.return_value = Enrollment(
            user_id=student.user_id, course_id=quiz.course_id
        )
        history.list_for_quiz.return_value = [
            AttemptSummary(
                user_id=student.user_id,
                course_id=quiz.course_id,
                quiz_id=quiz.id,
                attempt_id=attempt.id,
                started_at=attempt.started_at,
            )
        ]

        started = await service.start_attempt(student, quiz.id)

        assert started.resumed is True
        assert started.attempt is attempt
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_new_attempt(
        self, service, quiz, student, progress_service, history, mock_session
    ) -> None:
        service.require_quiz = AsyncMock(return_value=quiz)
        progress_service.find_enrollment.return_value = Enrollment(
            user_id=student.user_id, course_id=quiz.course_id
        )

        started = await service.start_attempt(student, quiz.id)

        assert started.resumed is False
        assert started.attempt.user_id == student.user_id
        assert started.attempt.lesson_id == quiz.lesson_id
        mock_session.aexecute.assert_awaited_once()
        history.record.assert_awaited_once()


# ==============================================================================
# Quiz views and authoring
# ==============================================================================


class TestQuizForLesson:
    @pytest.mark.asyncio
    async def test_learner_must_be_enrolled(self, service, quiz, student) -> None:
        service.require_quiz_for_lesson = AsyncMock(return_value=quiz)
        service.list_questions = AsyncMock(return_value=[])

        with pytest.raises(NotEnrolledError):
            await service.get_quiz_for_lesson(student, quiz.lesson_id)

    @pytest.mark.asyncio
    async def test_enrolled_learner_does_not_see_answers(
        self, service, quiz, questions, student, progress_service
    ) -> None:
        service.require_quiz_for_lesson = AsyncMock(return_value=quiz)
        service.list_questions = AsyncMock(return_value=questions)
        progress_service.find_enrollment.return_value = Enrollment(
            user_id=student.user_id, course_id=quiz.course_id
        )

        view = await service.get_quiz_for_lesson(student, quiz.lesson_id)

        assert view.reveal_answers is False

    @pytest.mark.asyncio
    async def test_course_instructor_sees_answers(
        self, service, quiz, instructor, course_service
    ) -> None:
        service.require_quiz_for_lesson = AsyncMock(return_value=quiz)
        service.list_questions = AsyncMock(return_value=[])
        course_service.get_course.return_value = Course(
            id=quiz.course_id, title="Course", instructor_id=instructor.user_id
        )

        view = await service.get_quiz_for_lesson(instructor, quiz.lesson_id)

        assert view.reveal_answers is True


class TestUpsertQuiz:
    def _request(self, **overrides) -> UpsertQuizRequest:
        data = {
            "title": "Checkpoint",
            "questions": [
                {
                    "prompt": "Pick one",
                    "options": [
                        {"text": "Right", "is_correct": True},
                        {"text": "Wrong"},
                    ],
                }
            ],
        }
        data.update(overrides)
        return UpsertQuizRequest(**data)

    @pytest.mark.asyncio
    async def test_creates_quiz_with_default_passing_score(
        self, service, course_service, instructor, mock_session
    ) -> None:
        course = Course(title="Course", instructor_id=instructor.user_id)
        lesson = Lesson(course_id=course.id, chapter_id=uuid4())
        course_service.require_lesson.return_value = lesson
        course_service.require_course.return_value = course

        view = await service.upsert_quiz(instructor, lesson.id, self._request())

        assert view.quiz.passing_score == 70
        assert view.quiz.created_by == instructor.user_id
        assert view.reveal_answers is True
        option_ids = [option.id for option in view.questions[0].options]
        assert all(len(option_id) == 8 for option_id in option_ids)
        assert len(set(option_ids)) == 2

    @pytest.mark.asyncio
    async def test_non_owner_cannot_save(
        self, service, course_service, instructor
    ) -> None:
        lesson = Lesson(course_id=uuid4(), chapter_id=uuid4())
        course_service.require_lesson.return_value = lesson
        course_service.require_course.return_value = Course(
            id=lesson.course_id, title="Course", instructor_id=uuid4()
        )
        course_service.ensure_can_manage.side_effect = NotCourseOwnerError()

        with pytest.raises(NotCourseOwnerError):
            await service.upsert_quiz(instructor, lesson.id, self._request())


class TestDeleteQuiz:
    @pytest.mark.asyncio
    async def test_owner_deletes_quiz_and_lookup(
        self, service, quiz, instructor, course_service, mock_session
    ) -> None:
        service.require_quiz_for_lesson = AsyncMock(return_value=quiz)
        course_service.require_course.return_value = Course(
            id=quiz.course_id, title="Course", instructor_id=instructor.user_id
        )

        await service.delete_quiz(instructor, quiz.lesson_id)

        assert mock_session.aexecute.await_count == 3
        last_call = mock_session.aexecute.await_args_list[-1]
        assert last_call.args[1] == [quiz.lesson_id]

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(
        self, service, quiz, instructor, course_service, mock_session
    ) -> None:
        service.require_quiz_for_lesson = AsyncMock(return_value=quiz)
        course_service.ensure_can_manage.side_effect = NotCourseOwnerError()

        with pytest.raises(NotCourseOwnerError):
            await service.delete_quiz(instructor, quiz.lesson_id)
        mock_session.aexecute.assert_not_awaited()


class TestAttemptHistoryView:
    @pytest.mark.asyncio
    async def test_best_score_and_passed(
        self, service, quiz, student, history
    ) -> None:
        finished = datetime.now(UTC)

        def summary(score: str | None, passed: bool | None) -> AttemptSummary:
            return AttemptSummary(
                user_id=student.user_id,
                course_id=quiz.course_id,
                quiz_id=quiz.id,
                attempt_id=uuid4(),
                completed_at=finished if score is not None else None,
                score=Decimal(score) if score is not None else None,
                passed=passed,
            )

        service.require_quiz_for_lesson = AsyncMock(return_value=quiz)
        history.list_for_quiz.return_value = [
            summary(None, None),
            summary("50.00", False),
            summary("100.00", True),
        ]

        view = await service.list_attempts(student, quiz.lesson_id)

        assert view.best_score == Decimal("100.00")
        assert view.has_passed is True
        assert len(view.attempts) == 3
        history.list_for_quiz.assert_awaited_once_with(
            student.user_id, quiz.course_id, quiz.id
        )

    @pytest.mark.asyncio
    async def test_no_attempts(self, service, quiz, student) -> None:
        service.require_quiz_for_lesson = AsyncMock(return_value=quiz)

        view = await service.list_attempts(student, quiz.lesson_id)

        assert view.best_score is None
        assert view.has_passed is False

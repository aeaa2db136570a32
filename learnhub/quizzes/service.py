"""Quiz service layer.

Business logic for:
- Quiz authoring per lesson (owner or admin only)
- Learner quiz views without option correctness
- Attempts: start (reusing an open attempt) and graded submission
- Attempt history with best score
"""

import random
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import orjson
import structlog
from cassandra.query import BatchStatement

from learnhub.core.errors import ConflictError, ForbiddenError, NotFoundError
from learnhub.quizzes.grading import GradeResult, grade_attempt, to_submitted_answer
from learnhub.quizzes.history import AttemptHistory, best_scores_by_quiz
from learnhub.quizzes.models import (
    AttemptSummary,
    Quiz,
    QuizAnswer,
    QuizAttempt,
    QuizOption,
    QuizQuestion,
    encode_options,
)
from learnhub.quizzes.schemas import UpsertQuizRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.auth.context import ActorContext
    from learnhub.courses.service import CourseService
    from learnhub.notifications.dispatcher import NotificationDispatcher
    from learnhub.progress.service import ProgressService, ProgressUpdate

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class QuizNotFoundError(NotFoundError):
    def __init__(self, message: str = "Quiz not found"):
        super().__init__(message, "quiz_not_found")


class AttemptNotFoundError(NotFoundError):
    def __init__(self, message: str = "Quiz attempt not found"):
        super().__init__(message, "attempt_not_found")


class AttemptAlreadySubmittedError(ConflictError):
    def __init__(self, message: str = "This attempt was already submitted"):
        super().__init__(message, "attempt_already_submitted")


class NotEnrolledError(ForbiddenError):
    def __init__(self, message: str = "Enroll in the course to take this quiz"):
        super().__init__(message, "not_enrolled")


@dataclass
class QuizView:
    quiz: Quiz
    questions: list[QuizQuestion]
    reveal_answers: bool


@dataclass
class StartedAttempt:
    attempt: QuizAttempt
    quiz: Quiz
    resumed: bool


@dataclass
class SubmissionResult:
    """Outcome of a graded submission."""

    attempt: QuizAttempt
    quiz: Quiz
    grade: GradeResult
    progress: "ProgressUpdate | None" = None


@dataclass
class AttemptHistoryView:
    quiz: Quiz
    attempts: list[AttemptSummary]
    best_score: Decimal | None
    has_passed: bool


# ==============================================================================
# Quiz Service
# ==============================================================================


class QuizService:
    """Service for quizzes, attempts and grading."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        progress_service: "ProgressService",
        history: AttemptHistory,
        notifier: "NotificationDispatcher | None" = None,
        default_passing_score: int = 70,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.progress_service = progress_service
        self.history = history
        self.notifier = notifier
        self.default_passing_score = default_passing_score
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Quizzes
        self._get_quiz = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quizzes WHERE id = ?
        """)

        self._upsert_quiz = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quizzes
            (id, lesson_id, course_id, title, description, passing_score,
             time_limit_minutes, shuffle_questions, show_results, created_by,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._delete_quiz = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.quizzes WHERE id = ?
        """)

        # Quizzes by lesson
        self._get_quiz_by_lesson = self.session.prepare(f"""
            SELECT quiz_id FROM {self.keyspace}.quizzes_by_lesson WHERE lesson_id = ?
        """)

        self._upsert_quiz_by_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quizzes_by_lesson (lesson_id, quiz_id)
            VALUES (?, ?)
        """)

        self._delete_quiz_by_lesson = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.quizzes_by_lesson WHERE lesson_id = ?
        """)

        # Questions
        self._get_questions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_questions WHERE quiz_id = ?
        """)

        self._insert_question = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_questions
            (quiz_id, question_id, position, prompt, type, options, points,
             explanation)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._delete_questions = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.quiz_questions WHERE quiz_id = ?
        """)

        # Attempts
        self._get_attempt = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts WHERE attempt_id = ?
        """)

        self._insert_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts
            (attempt_id, quiz_id, user_id, course_id, lesson_id, started_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._complete_attempt = self.session.prepare(f"""
            UPDATE {self.keyspace}.quiz_attempts
            SET score = ?, passed = ?, earned_points = ?, total_points = ?,
                completed_at = ?, time_spent_seconds = ?
            WHERE attempt_id = ?
            IF completed_at = null
        """)

        self._insert_answer = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts
            (attempt_id, question_id, answer, is_correct, points_awarded)
            VALUES (?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Quiz Reads
    # ==========================================================================

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        result = await self.session.aexecute(self._get_quiz, [quiz_id])
        row = result.one()
        return Quiz.from_row(row) if row else None

    async def require_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self.get_quiz(quiz_id)
        if not quiz:
            raise QuizNotFoundError()
        return quiz

    async def find_quiz_for_lesson(self, lesson_id: UUID) -> Quiz | None:
        result = await self.session.aexecute(self._get_quiz_by_lesson, [lesson_id])
        ref = result.one()
        if not ref:
            return None
        return await self.get_quiz(ref.quiz_id)

    async def require_quiz_for_lesson(self, lesson_id: UUID) -> Quiz:
        quiz = await self.find_quiz_for_lesson(lesson_id)
        if not quiz:
            raise QuizNotFoundError()
        return quiz

    async def list_questions(self, quiz_id: UUID) -> list[QuizQuestion]:
        """Questions of a quiz in authored order."""
        rows = await self.session.aexecute(self._get_questions, [quiz_id])
        questions = [QuizQuestion.from_row(row) for row in rows]
        return sorted(questions, key=lambda q: (q.position, str(q.id)))

    async def _can_manage(self, actor: "ActorContext", course_id: UUID) -> bool:
        if actor.is_admin:
            return True
        course = await self.course_service.get_course(course_id)
        return bool(course and course.instructor_id == actor.user_id)

    async def get_quiz_for_lesson(
        self, actor: "ActorContext", lesson_id: UUID
    ) -> QuizView:
        """Quiz of a lesson as the caller may see it.

        The course's instructor and admins see which options are correct.
        Enrolled learners get the questions without correctness, shuffled
        when the quiz asks for it.

        Raises:
            QuizNotFoundError: Lesson has no quiz
            NotEnrolledError: Caller neither manages nor is enrolled in the course
        """
        quiz = await self.require_quiz_for_lesson(lesson_id)
        questions = await self.list_questions(quiz.id)

        if await self._can_manage(actor, quiz.course_id):
            return QuizView(quiz=quiz, questions=questions, reveal_answers=True)

        enrollment = await self.progress_service.find_enrollment(
            actor.user_id, quiz.course_id
        )
        if not enrollment:
            raise NotEnrolledError()

        if quiz.shuffle_questions:
            questions = random.sample(questions, len(questions))
        return QuizView(quiz=quiz, questions=questions, reveal_answers=False)

    # ==========================================================================
    # Quiz Authoring
    # ==========================================================================

    async def upsert_quiz(
        self, actor: "ActorContext", lesson_id: UUID, data: UpsertQuizRequest
    ) -> QuizView:
        """Create the lesson's quiz or replace it, questions included.

        Stored attempts keep their answers; replaced questions only affect
        attempts submitted afterwards.
        """
        lesson = await self.course_service.require_lesson(lesson_id)
        course = await self.course_service.require_course(lesson.course_id)
        self.course_service.ensure_can_manage(actor, course)

        now = datetime.now(UTC)
        existing = await self.find_quiz_for_lesson(lesson_id)
        passing_score = (
            data.passing_score
            if data.passing_score is not None
            else self.default_passing_score
        )

        quiz = Quiz(
            id=existing.id if existing else None,
            lesson_id=lesson_id,
            course_id=lesson.course_id,
            title=data.title,
            description=data.description,
            passing_score=passing_score,
            time_limit_minutes=data.time_limit_minutes,
            shuffle_questions=data.shuffle_questions,
            show_results=data.show_results,
            created_by=existing.created_by if existing else actor.user_id,
            created_at=existing.created_at if existing else now,
            updated_at=now if existing else None,
        )

        await self.session.aexecute(
            self._upsert_quiz,
            [
                quiz.id,
                quiz.lesson_id,
                quiz.course_id,
                quiz.title,
                quiz.description,
                quiz.passing_score,
                quiz.time_limit_minutes,
                quiz.shuffle_questions,
                quiz.show_results,
                quiz.created_by,
                quiz.created_at,
                quiz.updated_at,
            ],
        )
        await self.session.aexecute(self._upsert_quiz_by_lesson, [lesson_id, quiz.id])

        if existing:
            await self.session.aexecute(self._delete_questions, [quiz.id])

        questions = []
        for position, item in enumerate(data.questions):
            question = QuizQuestion(
                quiz_id=quiz.id,
                prompt=item.prompt,
                type=item.type,
                options=[
                    QuizOption(
                        id=option.id or uuid4().hex[:8],
                        text=option.text,
                        is_correct=option.is_correct,
                    )
                    for option in item.options
                ],
                points=item.points,
                position=position,
                explanation=item.explanation,
            )
            await self.session.aexecute(
                self._insert_question,
                [
                    question.quiz_id,
                    question.id,
                    question.position,
                    question.prompt,
                    question.type.value,
                    encode_options(question.options),
                    question.points,
                    question.explanation,
                ],
            )
            questions.append(question)

        logger.info(
            "quiz_saved",
            quiz_id=str(quiz.id),
            lesson_id=str(lesson_id),
            question_count=len(questions),
            replaced=existing is not None,
        )
        return QuizView(quiz=quiz, questions=questions, reveal_answers=True)

    async def delete_quiz(self, actor: "ActorContext", lesson_id: UUID) -> None:
        quiz = await self.require_quiz_for_lesson(lesson_id)
        course = await self.course_service.require_course(quiz.course_id)
        self.course_service.ensure_can_manage(actor, course)

        await self.session.aexecute(self._delete_questions, [quiz.id])
        await self.session.aexecute(self._delete_quiz, [quiz.id])
        await self.session.aexecute(self._delete_quiz_by_lesson, [lesson_id])

        logger.info("quiz_deleted", quiz_id=str(quiz.id), lesson_id=str(lesson_id))

    # ==========================================================================
    # Attempts
    # ==========================================================================

    async def get_attempt(self, attempt_id: UUID) -> QuizAttempt | None:
        rows = await self.session.aexecute(self._get_attempt, [attempt_id])
        return QuizAttempt.from_rows(list(rows))

    async def start_attempt(
        self, actor: "ActorContext", quiz_id: UUID
    ) -> StartedAttempt:
        """Start an attempt, or return the caller's open one.

        Raises:
            QuizNotFoundError: Quiz does not exist
            NotEnrolledError: Caller is not enrolled in the quiz's course
        """
        quiz = await self.require_quiz(quiz_id)

        enrollment = await self.progress_service.find_enrollment(
            actor.user_id, quiz.course_id
        )
        if not enrollment:
            raise NotEnrolledError()

        for summary in await self.history.list_for_quiz(
            actor.user_id, quiz.course_id, quiz.id
        ):
            if summary.is_submitted:
                continue
            attempt = await self.get_attempt(summary.attempt_id)
            if attempt and not attempt.is_submitted:
                logger.info(
                    "quiz_attempt_resumed",
                    attempt_id=str(attempt.id),
                    quiz_id=str(quiz.id),
                )
                return StartedAttempt(attempt=attempt, quiz=quiz, resumed=True)
            if attempt:
                # Summary lagged behind the submitted attempt
                await self.history.record(self._summary_of(attempt))

        attempt = QuizAttempt(
            quiz_id=quiz.id,
            user_id=actor.user_id,
            course_id=quiz.course_id,
            lesson_id=quiz.lesson_id,
        )
        await self.session.aexecute(
            self._insert_attempt,
            [
                attempt.id,
                attempt.quiz_id,
                attempt.user_id,
                attempt.course_id,
                attempt.lesson_id,
                attempt.started_at,
            ],
        )
        await self.history.record(self._summary_of(attempt))

        logger.info(
            "quiz_attempt_started",
            attempt_id=str(attempt.id),
            quiz_id=str(quiz.id),
            user_id=str(actor.user_id),
        )
        return StartedAttempt(attempt=attempt, quiz=quiz, resumed=False)

    async def submit_attempt(
        self,
        actor: "ActorContext",
        attempt_id: UUID,
        answers: dict[UUID, str | list[str]],
    ) -> SubmissionResult:
        """Grade and persist an attempt.

        The attempt result and every answer row are written in one
        conditional batch, so a concurrent second submission fails. A passing
        attempt marks the quiz's lesson complete, which may complete the
        course and issue its certificate.

        Raises:
            AttemptNotFoundError: Attempt missing or not the caller's
            AttemptAlreadySubmittedError: Attempt already graded
            QuizNotFoundError: Quiz was deleted since the attempt started
        """
        attempt = await self.get_attempt(attempt_id)
        if not attempt or attempt.user_id != actor.user_id:
            raise AttemptNotFoundError()
        if attempt.is_submitted:
            raise AttemptAlreadySubmittedError()

        quiz = await self.require_quiz(attempt.quiz_id)
        questions = await self.list_questions(quiz.id)

        submitted = {
            question_id: answer
            for question_id, raw in answers.items()
            if (answer := to_submitted_answer(raw)) is not None
        }
        grade = grade_attempt(questions, submitted, quiz.passing_score)

        now = datetime.now(UTC)
        time_spent = max(0, int((now - attempt.started_at).total_seconds()))

        batch = BatchStatement()
        batch.add(
            self._complete_attempt,
            [
                grade.score,
                grade.passed,
                grade.earned_points,
                grade.total_points,
                now,
                time_spent,
                attempt.id,
            ],
        )
        for graded in grade.answers:
            batch.add(
                self._insert_answer,
                [
                    attempt.id,
                    graded.question.id,
                    orjson.dumps(graded.selected_option_ids).decode(),
                    graded.is_correct,
                    graded.points_awarded,
                ],
            )

        result = await self.session.aexecute(batch)
        if not result.was_applied:
            raise AttemptAlreadySubmittedError()

        attempt.score = grade.score
        attempt.passed = grade.passed
        attempt.earned_points = grade.earned_points
        attempt.total_points = grade.total_points
        attempt.completed_at = now
        attempt.time_spent_seconds = time_spent
        attempt.answers = [
            QuizAnswer(
                question_id=graded.question.id,
                selected_option_ids=graded.selected_option_ids,
                is_correct=graded.is_correct,
                points_awarded=graded.points_awarded,
            )
            for graded in grade.answers
        ]
        await self.history.record(self._summary_of(attempt))

        logger.info(
            "quiz_attempt_submitted",
            attempt_id=str(attempt.id),
            quiz_id=str(quiz.id),
            score=str(grade.score),
            passed=grade.passed,
            correct_answers=grade.correct_count,
            total_questions=len(grade.answers),
        )

        progress = None
        if grade.passed:
            progress = await self._complete_quiz_lesson(actor, attempt)
            if self.notifier:
                await self.notifier.quiz_passed(actor, quiz, grade.score)

        return SubmissionResult(
            attempt=attempt, quiz=quiz, grade=grade, progress=progress
        )

    async def _complete_quiz_lesson(
        self, actor: "ActorContext", attempt: QuizAttempt
    ) -> "ProgressUpdate | None":
        enrollment = await self.progress_service.find_enrollment(
            attempt.user_id, attempt.course_id
        )
        if not enrollment:
            logger.warning(
                "quiz_passed_without_enrollment",
                attempt_id=str(attempt.id),
                course_id=str(attempt.course_id),
            )
            return None
        return await self.progress_service.mark_lesson_complete(
            actor, enrollment, attempt.lesson_id
        )

    async def list_attempts(
        self, actor: "ActorContext", lesson_id: UUID
    ) -> AttemptHistoryView:
        """The caller's attempts at a lesson's quiz, newest first."""
        quiz = await self.require_quiz_for_lesson(lesson_id)
        attempts = await self.history.list_for_quiz(
            actor.user_id, quiz.course_id, quiz.id
        )
        best = best_scores_by_quiz(attempts).get(quiz.id)

        return AttemptHistoryView(
            quiz=quiz,
            attempts=attempts,
            best_score=best,
            has_passed=any(a.passed for a in attempts if a.is_submitted),
        )

    @staticmethod
    def _summary_of(attempt: QuizAttempt) -> AttemptSummary:
        return AttemptSummary(
            user_id=attempt.user_id,
            course_id=attempt.course_id,
            quiz_id=attempt.quiz_id,
            attempt_id=attempt.id,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            score=attempt.score,
            passed=attempt.passed,
        )

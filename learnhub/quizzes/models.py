"""Database models for quizzes and attempts.

Cassandra table definitions for:
- Quizzes: one per lesson, with a lesson lookup
- Quiz questions: partitioned by quiz, options stored as JSON
- Quiz attempts: one partition per attempt; attempt fields are static
  columns and each answer is a clustering row, so submission is a
  single-partition conditional batch
- Attempts by user: per (user, course) history used for attempt reuse,
  best scores and certificate grades
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import orjson

from learnhub.courses.models import ensure_utc_aware


class QuestionType(str, Enum):
    """Question kinds. Single choice and true/false have one correct option."""

    SINGLE_CHOICE = "single_choice"
    TRUE_FALSE = "true_false"
    MULTIPLE_SELECT = "multiple_select"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

QUIZZES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes (
    id UUID PRIMARY KEY,
    lesson_id UUID,
    course_id UUID,
    title TEXT,
    description TEXT,
    passing_score INT,
    time_limit_minutes INT,
    shuffle_questions BOOLEAN,
    show_results BOOLEAN,
    created_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

QUIZZES_BY_LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes_by_lesson (
    lesson_id UUID PRIMARY KEY,
    quiz_id UUID
)
"""

QUIZ_QUESTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_questions (
    quiz_id UUID,
    question_id UUID,
    position INT,
    prompt TEXT,
    type TEXT,
    options TEXT,
    points INT,
    explanation TEXT,
    PRIMARY KEY (quiz_id, question_id)
)
"""

QUIZ_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    attempt_id UUID,
    question_id UUID,
    quiz_id UUID STATIC,
    user_id UUID STATIC,
    course_id UUID STATIC,
    lesson_id UUID STATIC,
    score DECIMAL STATIC,
    passed BOOLEAN STATIC,
    earned_points INT STATIC,
    total_points INT STATIC,
    started_at TIMESTAMP STATIC,
    completed_at TIMESTAMP STATIC,
    time_spent_seconds INT STATIC,
    answer TEXT,
    is_correct BOOLEAN,
    points_awarded INT,
    PRIMARY KEY (attempt_id, question_id)
)
"""

QUIZ_ATTEMPTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts_by_user (
    user_id UUID,
    course_id UUID,
    quiz_id UUID,
    attempt_id UUID,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    score DECIMAL,
    passed BOOLEAN,
    PRIMARY KEY ((user_id, course_id), quiz_id, attempt_id)
)
"""

QUIZZES_TABLES_CQL = [
    QUIZZES_TABLE_CQL,
    QUIZZES_BY_LESSON_TABLE_CQL,
    QUIZ_QUESTIONS_TABLE_CQL,
    QUIZ_ATTEMPTS_TABLE_CQL,
    QUIZ_ATTEMPTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Quiz:
    """Quiz attached to a lesson.

    Attributes:
        id: Quiz ID
        lesson_id: Lesson the quiz belongs to
        course_id: Course of that lesson
        passing_score: Minimum percentage (0-100) to pass
        time_limit_minutes: Advisory time limit, None for no limit
        shuffle_questions: Shuffle question order for learners
        show_results: Reveal correct answers after submission
    """

    def __init__(
        self,
        lesson_id: UUID,
        course_id: UUID,
        title: str = "",
        description: str | None = None,
        passing_score: int = 70,
        time_limit_minutes: int | None = None,
        shuffle_questions: bool = False,
        show_results: bool = True,
        created_by: UUID | None = None,
        id: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.lesson_id = lesson_id
        self.course_id = course_id
        self.title = title.strip()
        self.description = description
        self.passing_score = passing_score
        self.time_limit_minutes = time_limit_minutes
        self.shuffle_questions = bool(shuffle_questions)
        self.show_results = True if show_results is None else bool(show_results)
        self.created_by = created_by
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Quiz":
        return cls(
            id=row.id,
            lesson_id=row.lesson_id,
            course_id=row.course_id,
            title=row.title,
            description=row.description,
            passing_score=row.passing_score,
            time_limit_minutes=row.time_limit_minutes,
            shuffle_questions=row.shuffle_questions,
            show_results=row.show_results,
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Quiz {self.title} (pass {self.passing_score}%)>"


@dataclass(frozen=True)
class QuizOption:
    """Answer option. ``is_correct`` is never sent to learners before grading."""

    id: str
    text: str
    is_correct: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "is_correct": self.is_correct}


class QuizQuestion:
    """Question with its options and point value."""

    def __init__(
        self,
        quiz_id: UUID,
        prompt: str,
        type: QuestionType = QuestionType.SINGLE_CHOICE,
        options: list[QuizOption] | None = None,
        points: int = 1,
        position: int = 0,
        explanation: str | None = None,
        id: UUID | None = None,
    ):
        self.id = id or uuid4()
        self.quiz_id = quiz_id
        self.prompt = prompt
        self.type = QuestionType(type)
        self.options = options or []
        self.points = points
        self.position = position
        self.explanation = explanation

    @classmethod
    def from_row(cls, row: Any) -> "QuizQuestion":
        return cls(
            id=row.question_id,
            quiz_id=row.quiz_id,
            prompt=row.prompt,
            type=QuestionType(row.type),
            options=decode_options(row.options),
            points=row.points if row.points is not None else 1,
            position=row.position or 0,
            explanation=row.explanation,
        )

    @property
    def correct_option_ids(self) -> frozenset[str]:
        return frozenset(option.id for option in self.options if option.is_correct)

    def __repr__(self) -> str:
        return f"<QuizQuestion {self.type.value} #{self.position}>"


class QuizAttempt:
    """One learner's attempt at a quiz.

    ``completed_at`` is None until the attempt is submitted; a submitted
    attempt is never graded again.
    """

    def __init__(
        self,
        quiz_id: UUID,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        id: UUID | None = None,
        score: Decimal | None = None,
        passed: bool | None = None,
        earned_points: int | None = None,
        total_points: int | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        time_spent_seconds: int | None = None,
        answers: list["QuizAnswer"] | None = None,
    ):
        self.id = id or uuid4()
        self.quiz_id = quiz_id
        self.user_id = user_id
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.score = score
        self.passed = passed
        self.earned_points = earned_points
        self.total_points = total_points
        self.started_at = ensure_utc_aware(started_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)
        self.time_spent_seconds = time_spent_seconds
        self.answers = answers or []

    @classmethod
    def from_rows(cls, rows: list[Any]) -> "QuizAttempt | None":
        """Build from all rows of an attempt partition (static + answer rows)."""
        if not rows:
            return None
        head = rows[0]
        return cls(
            id=head.attempt_id,
            quiz_id=head.quiz_id,
            user_id=head.user_id,
            course_id=head.course_id,
            lesson_id=head.lesson_id,
            score=head.score,
            passed=head.passed,
            earned_points=head.earned_points,
            total_points=head.total_points,
            started_at=head.started_at,
            completed_at=head.completed_at,
            time_spent_seconds=head.time_spent_seconds,
            answers=[QuizAnswer.from_row(row) for row in rows if row.question_id],
        )

    @property
    def is_submitted(self) -> bool:
        return self.completed_at is not None

    def __repr__(self) -> str:
        state = f"{self.score}%" if self.is_submitted else "open"
        return f"<QuizAttempt {self.id} {state}>"


class QuizAnswer:
    """Graded answer to one question of an attempt."""

    def __init__(
        self,
        question_id: UUID,
        selected_option_ids: list[str],
        is_correct: bool,
        points_awarded: int,
    ):
        self.question_id = question_id
        self.selected_option_ids = selected_option_ids
        self.is_correct = is_correct
        self.points_awarded = points_awarded

    @classmethod
    def from_row(cls, row: Any) -> "QuizAnswer":
        return cls(
            question_id=row.question_id,
            selected_option_ids=orjson.loads(row.answer) if row.answer else [],
            is_correct=bool(row.is_correct),
            points_awarded=row.points_awarded or 0,
        )


class AttemptSummary:
    """Row of ``quiz_attempts_by_user``."""

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        quiz_id: UUID,
        attempt_id: UUID,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        score: Decimal | None = None,
        passed: bool | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.quiz_id = quiz_id
        self.attempt_id = attempt_id
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.score = score
        self.passed = passed

    @classmethod
    def from_row(cls, row: Any) -> "AttemptSummary":
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            quiz_id=row.quiz_id,
            attempt_id=row.attempt_id,
            started_at=row.started_at,
            completed_at=row.completed_at,
            score=row.score,
            passed=row.passed,
        )

    @property
    def is_submitted(self) -> bool:
        return self.completed_at is not None


# ==============================================================================
# Helper Functions
# ==============================================================================


def encode_options(options: list[QuizOption]) -> str:
    return orjson.dumps([option.to_dict() for option in options]).decode()


def decode_options(raw: str | None) -> list[QuizOption]:
    if not raw:
        return []
    return [
        QuizOption(
            id=str(item["id"]),
            text=item.get("text", ""),
            is_correct=bool(item.get("is_correct", False)),
        )
        for item in orjson.loads(raw)
    ]

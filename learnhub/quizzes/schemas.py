"""Pydantic schemas for quizzes.

Request and response models for:
- Quiz authoring (with question validation)
- Learner quiz view, where option correctness is withheld
- Attempt start, submission result and history
"""

from datetime import datetime
from decimal import Decimal
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from learnhub.quizzes.grading import GradedAnswer
from learnhub.quizzes.models import (
    AttemptSummary,
    QuestionType,
    Quiz,
    QuizAttempt,
    QuizQuestion,
)


# ==============================================================================
# Authoring
# ==============================================================================


class QuizOptionInput(BaseModel):
    id: str | None = Field(
        None, min_length=1, max_length=64, description="Generated when omitted"
    )
    text: str = Field(..., min_length=1, max_length=1000)
    is_correct: bool = False


class QuizQuestionInput(BaseModel):
    """One question of a quiz being saved."""

    prompt: str = Field(..., min_length=1, max_length=2000)
    type: QuestionType = QuestionType.SINGLE_CHOICE
    options: list[QuizOptionInput] = Field(..., min_length=2)
    points: int = Field(1, ge=1, le=1000)
    explanation: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def validate_options(self) -> Self:
        """Each question needs a well-defined correct set for its type."""
        ids = [option.id for option in self.options if option.id]
        if len(ids) != len(set(ids)):
            msg = "option ids must be unique within a question"
            raise ValueError(msg)

        correct = sum(1 for option in self.options if option.is_correct)
        if self.type == QuestionType.MULTIPLE_SELECT:
            if correct < 1:
                msg = "multiple select questions need at least one correct option"
                raise ValueError(msg)
        elif correct != 1:
            msg = f"{self.type.value} questions need exactly one correct option"
            raise ValueError(msg)

        if self.type == QuestionType.TRUE_FALSE and len(self.options) != 2:
            msg = "true/false questions have exactly two options"
            raise ValueError(msg)
        return self


class UpsertQuizRequest(BaseModel):
    """Create or replace the quiz of a lesson, including all questions."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    passing_score: int | None = Field(
        None, ge=0, le=100, description="Defaults to the configured passing score"
    )
    time_limit_minutes: int | None = Field(None, ge=1)
    shuffle_questions: bool = False
    show_results: bool = True
    questions: list[QuizQuestionInput] = Field(..., min_length=1)


# ==============================================================================
# Quiz views
# ==============================================================================


class QuizOptionResponse(BaseModel):
    id: str
    text: str
    is_correct: bool | None = Field(
        None, description="Only present for the quiz's instructors"
    )


class QuizQuestionResponse(BaseModel):
    id: UUID
    position: int
    prompt: str
    type: QuestionType
    points: int
    options: list[QuizOptionResponse]
    explanation: str | None = None

    @classmethod
    def from_entity(
        cls, question: QuizQuestion, reveal_answers: bool
    ) -> "QuizQuestionResponse":
        """Build the view; without ``reveal_answers`` correctness is stripped."""
        return cls(
            id=question.id,
            position=question.position,
            prompt=question.prompt,
            type=question.type,
            points=question.points,
            options=[
                QuizOptionResponse(
                    id=option.id,
                    text=option.text,
                    is_correct=option.is_correct if reveal_answers else None,
                )
                for option in question.options
            ],
            explanation=question.explanation if reveal_answers else None,
        )


class QuizResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lesson_id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    passing_score: int
    time_limit_minutes: int | None = None
    shuffle_questions: bool
    show_results: bool
    total_points: int
    questions: list[QuizQuestionResponse]

    @classmethod
    def from_entity(
        cls, quiz: Quiz, questions: list[QuizQuestion], reveal_answers: bool
    ) -> "QuizResponse":
        return cls(
            id=quiz.id,
            lesson_id=quiz.lesson_id,
            course_id=quiz.course_id,
            title=quiz.title,
            description=quiz.description,
            passing_score=quiz.passing_score,
            time_limit_minutes=quiz.time_limit_minutes,
            shuffle_questions=quiz.shuffle_questions,
            show_results=quiz.show_results,
            total_points=sum(q.points for q in questions),
            questions=[
                QuizQuestionResponse.from_entity(q, reveal_answers) for q in questions
            ],
        )


# ==============================================================================
# Attempts
# ==============================================================================


class AttemptResponse(BaseModel):
    """Attempt as returned by start."""

    id: UUID
    quiz_id: UUID
    started_at: datetime
    completed_at: datetime | None = None
    time_limit_minutes: int | None = None
    resumed: bool = Field(False, description="True when an open attempt was reused")

    @classmethod
    def from_entity(
        cls, attempt: QuizAttempt, quiz: Quiz, resumed: bool
    ) -> "AttemptResponse":
        return cls(
            id=attempt.id,
            quiz_id=attempt.quiz_id,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            time_limit_minutes=quiz.time_limit_minutes,
            resumed=resumed,
        )


class SubmitAttemptRequest(BaseModel):
    """Answers keyed by question id.

    A string selects one option; a list selects a set of options.
    """

    answers: dict[UUID, str | list[str]] = Field(default_factory=dict)


class QuestionResult(BaseModel):
    question_id: UUID
    prompt: str
    user_answer: list[str]
    is_correct: bool
    points_awarded: int
    correct_option_ids: list[str]
    explanation: str | None = None

    @classmethod
    def from_graded(cls, graded: GradedAnswer) -> "QuestionResult":
        return cls(
            question_id=graded.question.id,
            prompt=graded.question.prompt,
            user_answer=graded.selected_option_ids,
            is_correct=graded.is_correct,
            points_awarded=graded.points_awarded,
            correct_option_ids=sorted(graded.question.correct_option_ids),
            explanation=graded.question.explanation,
        )


class SubmitAttemptResponse(BaseModel):
    attempt_id: UUID
    score: Decimal = Field(description="0-100 percentage")
    passed: bool
    passing_score: int
    earned_points: int
    total_points: int
    total_questions: int
    correct_answers: int
    time_spent_seconds: int
    completed_at: datetime
    lesson_completed: bool = False
    course_progress: int | None = None
    certificate_no: str | None = None
    results: list[QuestionResult] | None = Field(
        None, description="Per-question breakdown when the quiz shows results"
    )


class AttemptSummaryResponse(BaseModel):
    attempt_id: UUID
    started_at: datetime | None = None
    completed_at: datetime | None = None
    score: Decimal | None = None
    passed: bool | None = None

    @classmethod
    def from_entity(cls, summary: AttemptSummary) -> "AttemptSummaryResponse":
        return cls(
            attempt_id=summary.attempt_id,
            started_at=summary.started_at,
            completed_at=summary.completed_at,
            score=summary.score,
            passed=summary.passed,
        )


class AttemptHistoryResponse(BaseModel):
    quiz_id: UUID
    attempts: list[AttemptSummaryResponse]
    best_score: Decimal | None = None
    has_passed: bool

"""Quiz grading.

Pure functions: given the stored questions and the submitted answers they
always produce the same result, so grading can be tested without storage.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import assert_never
from uuid import UUID

from learnhub.quizzes.models import QuestionType, QuizQuestion


SCORE_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class SingleAnswer:
    """One chosen option."""

    option_id: str

    @property
    def option_ids(self) -> frozenset[str]:
        return frozenset({self.option_id})


@dataclass(frozen=True)
class MultiAnswer:
    """A set of chosen options."""

    option_ids: frozenset[str]


SubmittedAnswer = SingleAnswer | MultiAnswer


@dataclass(frozen=True)
class GradedAnswer:
    question: QuizQuestion
    answer: SubmittedAnswer | None
    is_correct: bool
    points_awarded: int

    @property
    def selected_option_ids(self) -> list[str]:
        if self.answer is None:
            return []
        return sorted(self.answer.option_ids)


@dataclass(frozen=True)
class GradeResult:
    answers: list[GradedAnswer]
    earned_points: int
    total_points: int
    score: Decimal
    passed: bool

    @property
    def correct_count(self) -> int:
        return sum(1 for answer in self.answers if answer.is_correct)


def to_submitted_answer(raw: str | list[str] | None) -> SubmittedAnswer | None:
    """Normalize a request value: a string is one option, a list a set."""
    if raw is None:
        return None
    if isinstance(raw, str):
        return SingleAnswer(raw)
    return MultiAnswer(frozenset(str(option_id) for option_id in raw))


def is_answer_correct(question: QuizQuestion, answer: SubmittedAnswer | None) -> bool:
    """Whether an answer matches the question's correct option(s).

    Single choice and true/false need exactly the one correct option; a
    one-element set is accepted as that option. Multiple select needs the
    exact correct set, so subsets and supersets are wrong.
    """
    if answer is None:
        return False

    correct = question.correct_option_ids
    chosen = answer.option_ids
    question_type = question.type

    if (
        question_type is QuestionType.SINGLE_CHOICE
        or question_type is QuestionType.TRUE_FALSE
    ):
        return len(correct) == 1 and chosen == correct
    if question_type is QuestionType.MULTIPLE_SELECT:
        return bool(correct) and chosen == correct
    assert_never(question_type)


def compute_score(earned_points: int, total_points: int) -> Decimal:
    """Percentage of points earned, to two decimals; 0 when there are no points."""
    if total_points <= 0:
        return Decimal(0).quantize(SCORE_QUANTUM)
    return (Decimal(100) * earned_points / total_points).quantize(
        SCORE_QUANTUM, rounding=ROUND_HALF_UP
    )


def has_passed(earned_points: int, total_points: int, passing_score: int) -> bool:
    """Compare the exact ratio against the threshold, not the rounded score."""
    if total_points <= 0:
        return passing_score <= 0
    return earned_points * 100 >= passing_score * total_points


def grade_attempt(
    questions: list[QuizQuestion],
    answers: dict[UUID, SubmittedAnswer],
    passing_score: int,
) -> GradeResult:
    """Grade every question; unanswered questions score zero.

    Answers for question ids that are not part of the quiz are ignored.
    """
    graded = []
    for question in sorted(questions, key=lambda q: (q.position, str(q.id))):
        answer = answers.get(question.id)
        correct = is_answer_correct(question, answer)
        graded.append(
            GradedAnswer(
                question=question,
                answer=answer,
                is_correct=correct,
                points_awarded=question.points if correct else 0,
            )
        )

    earned = sum(answer.points_awarded for answer in graded)
    total = sum(question.points for question in questions)

    return GradeResult(
        answers=graded,
        earned_points=earned,
        total_points=total,
        score=compute_score(earned, total),
        passed=has_passed(earned, total, passing_score),
    )

"""Lesson quizzes, attempts and grading.

Provides:
- Quiz authoring with per-type answer validation
- Attempt lifecycle with atomic, single-use submission
- Deterministic grading and per-quiz best scores
"""

from learnhub.quizzes.grading import grade_attempt
from learnhub.quizzes.models import (
    QUIZZES_TABLES_CQL,
    QuestionType,
    Quiz,
    QuizAttempt,
    QuizQuestion,
)


__all__ = [
    "QUIZZES_TABLES_CQL",
    "QuestionType",
    "Quiz",
    "QuizAttempt",
    "QuizQuestion",
    "grade_attempt",
]

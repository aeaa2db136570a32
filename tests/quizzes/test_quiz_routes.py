"""Tests for the quiz endpoints."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from learnhub.quizzes.grading import SingleAnswer, grade_attempt
from learnhub.quizzes.models import Quiz, QuizAttempt, QuizOption, QuizQuestion
from learnhub.quizzes.service import AttemptAlreadySubmittedError, SubmissionResult


@pytest.fixture
def quiz_service(app: FastAPI) -> MagicMock:
    service = MagicMock()
    app.state.quiz_service = service
    return service


def _submission(student, show_results: bool = True) -> SubmissionResult:
    quiz = Quiz(
        lesson_id=uuid4(),
        course_id=uuid4(),
        title="Checkpoint",
        show_results=show_results,
    )
    question = QuizQuestion(
        quiz_id=quiz.id,
        prompt="2 + 2?",
        options=[
            QuizOption(id="a", text="4", is_correct=True),
            QuizOption(id="b", text="5"),
        ],
    )
    grade = grade_attempt([question], {question.id: SingleAnswer("b")}, 70)
    attempt = QuizAttempt(
        quiz_id=quiz.id,
        user_id=student.user_id,
        course_id=quiz.course_id,
        lesson_id=quiz.lesson_id,
        completed_at=datetime.now(UTC),
        time_spent_seconds=42,
    )
    return SubmissionResult(attempt=attempt, quiz=quiz, grade=grade)


class TestSubmitAttempt:
    def test_failed_submission(
        self, client: TestClient, quiz_service, student, student_headers
    ) -> None:
        submission = _submission(student)
        quiz_service.submit_attempt = AsyncMock(return_value=submission)
        question_id = submission.grade.answers[0].question.id

        response = client.post(
            f"/v1/quizzes/attempts/{submission.attempt.id}/submit",
            headers=student_headers,
            json={"answers": {str(question_id): "b"}},
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["score"]) == Decimal("0.00")
        assert data["passed"] is False
        assert data["lesson_completed"] is False
        assert data["certificate_no"] is None
        assert data["results"][0]["correct_option_ids"] == ["a"]
        assert data["results"][0]["user_answer"] == ["b"]
        _, attempt_id, answers = quiz_service.submit_attempt.await_args.args
        assert attempt_id == submission.attempt.id
        assert answers == {question_id: "b"}

    def test_results_hidden(
        self, client: TestClient, quiz_service, student, student_headers
    ) -> None:
        submission = _submission(student, show_results=False)
        quiz_service.submit_attempt = AsyncMock(return_value=submission)

        response = client.post(
            f"/v1/quizzes/attempts/{submission.attempt.id}/submit",
            headers=student_headers,
            json={"answers": {}},
        )

        assert response.json()["results"] is None

    def test_resubmission_conflicts(
        self, client: TestClient, quiz_service, student_headers
    ) -> None:
        quiz_service.submit_attempt = AsyncMock(
            side_effect=AttemptAlreadySubmittedError()
        )

        response = client.post(
            f"/v1/quizzes/attempts/{uuid4()}/submit",
            headers=student_headers,
            json={"answers": {}},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "attempt_already_submitted"

"""Tests for attempt history reads."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from learnhub.quizzes.history import AttemptHistory, best_scores_by_quiz
from learnhub.quizzes.models import AttemptSummary


USER_ID = uuid4()
COURSE_ID = uuid4()
STARTED = datetime(2026, 2, 1, 9, 0, tzinfo=UTC)


def _summary(quiz_id, score: str | None, submitted: bool = True, offset: int = 0):
    return AttemptSummary(
        user_id=USER_ID,
        course_id=COURSE_ID,
        quiz_id=quiz_id,
        attempt_id=uuid4(),
        started_at=STARTED + timedelta(minutes=offset),
        completed_at=STARTED + timedelta(minutes=offset + 5) if submitted else None,
        score=Decimal(score) if score is not None else None,
        passed=submitted and score is not None and Decimal(score) >= 70,
    )


class TestBestScores:
    def test_best_per_quiz(self) -> None:
        quiz_a, quiz_b = uuid4(), uuid4()
        attempts = [
            _summary(quiz_a, "40.00"),
            _summary(quiz_a, "85.50"),
            _summary(quiz_a, "60.00"),
            _summary(quiz_b, "70.00"),
        ]

        assert best_scores_by_quiz(attempts) == {
            quiz_a: Decimal("85.50"),
            quiz_b: Decimal("70.00"),
        }

    def test_open_attempts_are_ignored(self) -> None:
        quiz_id = uuid4()
        assert best_scores_by_quiz([_summary(quiz_id, None, submitted=False)]) == {}


class TestAttemptHistory:
    @pytest.mark.asyncio
    async def test_list_for_quiz_newest_first(self, mock_session, make_result) -> None:
        quiz_id = uuid4()
        rows = [
            SimpleNamespace(**vars(_summary(quiz_id, "50.00", offset=offset)))
            for offset in (0, 30, 10)
        ]
        mock_session.aexecute.return_value = make_result(rows)
        history = AttemptHistory(mock_session, "learnhub_test")

        attempts = await history.list_for_quiz(USER_ID, COURSE_ID, quiz_id)

        assert [a.started_at for a in attempts] == [
            STARTED + timedelta(minutes=30),
            STARTED + timedelta(minutes=10),
            STARTED,
        ]

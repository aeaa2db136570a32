"""Per-learner attempt history.

Backs attempt reuse on start, the attempt list of a quiz, and the best
scores that make up a certificate grade.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from learnhub.quizzes.models import AttemptSummary


if TYPE_CHECKING:
    from cassandra.cluster import Session


_EPOCH = datetime.fromtimestamp(0, UTC)


class AttemptHistory:
    """Reads and writes ``quiz_attempts_by_user``."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._upsert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts_by_user
            (user_id, course_id, quiz_id, attempt_id, started_at, completed_at,
             score, passed)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._list_for_quiz = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts_by_user
            WHERE user_id = ? AND course_id = ? AND quiz_id = ?
        """)

        self._list_for_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts_by_user
            WHERE user_id = ? AND course_id = ?
        """)

    async def record(self, summary: AttemptSummary) -> None:
        await self.session.aexecute(
            self._upsert,
            [
                summary.user_id,
                summary.course_id,
                summary.quiz_id,
                summary.attempt_id,
                summary.started_at,
                summary.completed_at,
                summary.score,
                summary.passed,
            ],
        )

    async def list_for_quiz(
        self, user_id: UUID, course_id: UUID, quiz_id: UUID
    ) -> list[AttemptSummary]:
        """Attempts at one quiz, most recently started first."""
        rows = await self.session.aexecute(
            self._list_for_quiz, [user_id, course_id, quiz_id]
        )
        attempts = [AttemptSummary.from_row(row) for row in rows]
        return sorted(attempts, key=lambda a: a.started_at or _EPOCH, reverse=True)

    async def list_for_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[AttemptSummary]:
        rows = await self.session.aexecute(self._list_for_course, [user_id, course_id])
        return [AttemptSummary.from_row(row) for row in rows]

    async def best_scores(self, user_id: UUID, course_id: UUID) -> dict[UUID, Decimal]:
        """Best submitted score per quiz the learner attempted in a course."""
        return best_scores_by_quiz(await self.list_for_course(user_id, course_id))


def best_scores_by_quiz(attempts: list[AttemptSummary]) -> dict[UUID, Decimal]:
    best: dict[UUID, Decimal] = {}
    for attempt in attempts:
        if not attempt.is_submitted or attempt.score is None:
            continue
        current = best.get(attempt.quiz_id)
        if current is None or attempt.score > current:
            best[attempt.quiz_id] = attempt.score
    return best

"""Completion evaluation.

The percentage is always recomputed from the lesson progress rows rather
than incremented, so a lost concurrent write is corrected by the next
evaluation.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from learnhub.progress.models import Enrollment, EnrollmentStatus, LessonProgress


@dataclass(frozen=True)
class CompletionOutcome:
    """Result of evaluating an enrollment."""

    progress_percent: int
    completed_lessons: int
    total_lessons: int
    newly_completed: bool


def compute_progress_percent(completed: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when there is nothing to do.

    Examples:
        >>> compute_progress_percent(3, 4)
        75
        >>> compute_progress_percent(1, 8)
        13
        >>> compute_progress_percent(0, 0)
        0
    """
    if total <= 0:
        return 0
    percent = (Decimal(100) * completed / total).quantize(
        Decimal(1), rounding=ROUND_HALF_UP
    )
    return max(0, min(100, int(percent)))


def count_completed(
    published_lesson_ids: Iterable[UUID], progress: Iterable[LessonProgress]
) -> int:
    """Completed lessons among the published ones; stale rows are ignored."""
    published = set(published_lesson_ids)
    return sum(
        1
        for record in progress
        if record.is_completed and record.lesson_id in published
    )


def apply_completion(
    enrollment: Enrollment,
    published_lesson_ids: list[UUID],
    progress: list[LessonProgress],
    now: datetime,
) -> CompletionOutcome:
    """Recompute the enrollment in place and report what changed.

    COMPLETED is terminal: once set, later evaluations refresh the
    percentage but keep the completion flag and timestamp.
    """
    total = len(set(published_lesson_ids))
    completed = count_completed(published_lesson_ids, progress)
    percent = compute_progress_percent(completed, total)

    enrollment.progress_percent = percent
    enrollment.updated_at = now
    if progress and enrollment.started_at is None:
        enrollment.started_at = min(record.created_at for record in progress)

    newly_completed = False
    if enrollment.is_completed:
        enrollment.status = EnrollmentStatus.COMPLETED.value
    elif total > 0 and percent == 100:
        enrollment.is_completed = True
        enrollment.completed_at = now
        enrollment.status = EnrollmentStatus.COMPLETED.value
        newly_completed = True
    elif progress:
        enrollment.status = EnrollmentStatus.IN_PROGRESS.value
    else:
        enrollment.status = EnrollmentStatus.NOT_STARTED.value

    return CompletionOutcome(
        progress_percent=percent,
        completed_lessons=completed,
        total_lessons=total,
        newly_completed=newly_completed,
    )

"""Enrollments, lesson progress and course completion.

Provides:
- Free enrollment and the enrollment entry point used by purchases
- Per-lesson progress recording
- Completion evaluation that triggers certificate issuance
"""

from learnhub.progress.models import (
    PROGRESS_TABLES_CQL,
    Enrollment,
    EnrollmentStatus,
    LessonProgress,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "EnrollmentStatus",
    "LessonProgress",
]

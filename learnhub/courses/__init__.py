"""Course catalogue: courses, chapters and lessons."""

from learnhub.courses.models import (
    COURSES_TABLES_CQL,
    Chapter,
    ContentStatus,
    ContentType,
    Course,
    Lesson,
)


__all__ = [
    "COURSES_TABLES_CQL",
    "Chapter",
    "ContentStatus",
    "ContentType",
    "Course",
    "Lesson",
]

"""Database models for certificates.

Cassandra table definitions for:
- Certificates: keyed by the public certificate number
- Certificates by user: one row per (user, course), the uniqueness claim
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from learnhub.courses.models import ensure_utc_aware


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CERTIFICATES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates (
    certificate_no TEXT PRIMARY KEY,
    user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    holder_name TEXT,
    course_title TEXT,
    issued_at TIMESTAMP,
    completed_at TIMESTAMP,
    grade DECIMAL
)
"""

CERTIFICATES_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates_by_user (
    user_id UUID,
    course_id UUID,
    certificate_no TEXT,
    course_title TEXT,
    issued_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

CERTIFICATES_TABLES_CQL = [
    CERTIFICATES_TABLE_CQL,
    CERTIFICATES_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Certificate:
    """Certificate of completion.

    The number, holder name and course title are fixed at issuance.

    Attributes:
        certificate_no: Public, globally unique number used for verification
        user_id: Holder
        course_id: Completed course
        grade: Average best quiz score (0-100)
    """

    def __init__(
        self,
        certificate_no: str,
        user_id: UUID,
        course_id: UUID,
        enrollment_id: UUID | None = None,
        holder_name: str | None = None,
        course_title: str | None = None,
        issued_at: datetime | None = None,
        completed_at: datetime | None = None,
        grade: Decimal | None = None,
    ):
        self.certificate_no = certificate_no
        self.user_id = user_id
        self.course_id = course_id
        self.enrollment_id = enrollment_id
        self.holder_name = holder_name
        self.course_title = course_title
        self.issued_at = ensure_utc_aware(issued_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)
        self.grade = grade

    @classmethod
    def from_row(cls, row: Any) -> "Certificate":
        return cls(
            certificate_no=row.certificate_no,
            user_id=row.user_id,
            course_id=row.course_id,
            enrollment_id=row.enrollment_id,
            holder_name=row.holder_name,
            course_title=row.course_title,
            issued_at=row.issued_at,
            completed_at=row.completed_at,
            grade=row.grade,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "certificate_no": self.certificate_no,
            "user_id": str(self.user_id),
            "course_id": str(self.course_id),
            "holder_name": self.holder_name,
            "course_title": self.course_title,
            "issued_at": self.issued_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "grade": str(self.grade) if self.grade is not None else None,
        }

    def __repr__(self) -> str:
        return f"<Certificate {self.certificate_no}>"

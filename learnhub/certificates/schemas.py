"""Pydantic schemas for certificates."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from learnhub.certificates.models import Certificate


class CertificateResponse(BaseModel):
    certificate_no: str
    course_id: UUID
    course_title: str | None = None
    holder_name: str | None = None
    issued_at: datetime
    completed_at: datetime | None = None
    grade: Decimal | None = None

    @classmethod
    def from_entity(cls, certificate: Certificate) -> "CertificateResponse":
        return cls(
            certificate_no=certificate.certificate_no,
            course_id=certificate.course_id,
            course_title=certificate.course_title,
            holder_name=certificate.holder_name,
            issued_at=certificate.issued_at,
            completed_at=certificate.completed_at,
            grade=certificate.grade,
        )


class CertificateListResponse(BaseModel):
    items: list[CertificateResponse]
    total: int


class CertificateVerificationResponse(BaseModel):
    """Public view of a certificate; holds no account identifiers."""

    valid: bool = True
    certificate_no: str
    holder_name: str | None = None
    course_title: str | None = None
    issued_at: datetime
    completed_at: datetime | None = None
    grade: Decimal | None = Field(None, description="0-100")

    @classmethod
    def from_entity(
        cls, certificate: Certificate
    ) -> "CertificateVerificationResponse":
        return cls(
            certificate_no=certificate.certificate_no,
            holder_name=certificate.holder_name,
            course_title=certificate.course_title,
            issued_at=certificate.issued_at,
            completed_at=certificate.completed_at,
            grade=certificate.grade,
        )

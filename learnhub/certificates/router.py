"""Certificate API endpoints.

Provides routes for:
- Issuing the caller's certificate for a completed course
- Reading the caller's certificates
- Public verification by certificate number
"""

from uuid import UUID

from fastapi import APIRouter, Response, status

from learnhub.auth.dependencies import CurrentActor
from learnhub.certificates.dependencies import CertificateServiceDep
from learnhub.certificates.schemas import (
    CertificateListResponse,
    CertificateResponse,
    CertificateVerificationResponse,
)
from learnhub.progress.dependencies import ProgressServiceDep


router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


@router.get("/my", response_model=CertificateListResponse, summary="My certificates")
async def list_my_certificates(
    service: CertificateServiceDep, actor: CurrentActor
) -> CertificateListResponse:
    certificates = await service.list_for_user(actor.user_id)
    return CertificateListResponse(
        items=[CertificateResponse.from_entity(c) for c in certificates],
        total=len(certificates),
    )


@router.get(
    "/verify/{certificate_no}",
    response_model=CertificateVerificationResponse,
    summary="Verify certificate",
)
async def verify_certificate(
    certificate_no: str, service: CertificateServiceDep
) -> CertificateVerificationResponse:
    """Public endpoint; unknown numbers return 404."""
    certificate = await service.verify(certificate_no)
    return CertificateVerificationResponse.from_entity(certificate)


@router.post(
    "/{course_id}",
    response_model=CertificateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue certificate",
)
async def issue_certificate(
    course_id: UUID,
    response: Response,
    service: CertificateServiceDep,
    progress_service: ProgressServiceDep,
    actor: CurrentActor,
) -> CertificateResponse:
    """Issue the caller's certificate for a completed course.

    Returns 201 when issued now and 200 when it already existed.
    """
    enrollment = await progress_service.require_enrollment(actor.user_id, course_id)
    issued = await service.issue_for_enrollment(actor, enrollment)
    if not issued.created:
        response.status_code = status.HTTP_200_OK
    return CertificateResponse.from_entity(issued.certificate)


@router.get(
    "/{course_id}", response_model=CertificateResponse, summary="My course certificate"
)
async def get_course_certificate(
    course_id: UUID, service: CertificateServiceDep, actor: CurrentActor
) -> CertificateResponse:
    certificate = await service.require_for_course(actor.user_id, course_id)
    return CertificateResponse.from_entity(certificate)

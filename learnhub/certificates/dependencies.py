"""FastAPI dependencies for certificates."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.certificates.service import CertificateService


async def get_certificate_service(request: Request) -> CertificateService:
    """Get certificate service from app state."""
    service = getattr(request.app.state, "certificate_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Certificate service not available",
        )
    return service


CertificateServiceDep = Annotated[CertificateService, Depends(get_certificate_service)]

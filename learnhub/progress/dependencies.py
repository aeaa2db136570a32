"""FastAPI dependencies for enrollments and progress."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.progress.service import ProgressService


async def get_progress_service(request: Request) -> ProgressService:
    """Get progress service from app state."""
    service = getattr(request.app.state, "progress_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return service


ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]

"""FastAPI dependencies for the course catalogue."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.courses.service import CourseService


async def get_course_service(request: Request) -> CourseService:
    """Get course service from app state."""
    service = getattr(request.app.state, "course_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return service


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]

"""FastAPI dependencies for quizzes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.quizzes.service import QuizService


async def get_quiz_service(request: Request) -> QuizService:
    """Get quiz service from app state."""
    service = getattr(request.app.state, "quiz_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Quiz service not available",
        )
    return service


QuizServiceDep = Annotated[QuizService, Depends(get_quiz_service)]

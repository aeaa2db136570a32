"""FastAPI dependencies for authentication.

Provides:
- Caller extraction from the Bearer JWT
- Role requirements built on the permission hierarchy
"""

from typing import Annotated

from fastapi import Depends, Request
from jose import JWTError

from learnhub.auth.context import ActorContext
from learnhub.auth.permissions import UserRole
from learnhub.auth.security import decode_access_token
from learnhub.core.errors import ForbiddenError, UnauthorizedError
from learnhub.core.middleware import set_user_context


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_actor(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> ActorContext:
    """Build the caller context from the access token.

    Raises:
        UnauthorizedError: If the token is missing, invalid, or expired
    """
    if not token:
        raise UnauthorizedError("Access token not provided", "missing_token")

    try:
        payload = decode_access_token(token)
        actor = ActorContext.from_token_payload(payload)
    except (JWTError, ValueError) as e:
        raise UnauthorizedError("Invalid or expired token", "invalid_token") from e

    set_user_context(str(actor.user_id))
    return actor


def require_permission(required_role: UserRole):
    """Create dependency requiring at least a permission level.

    Example:
        @router.post("/courses")
        async def create_course(
            actor: Annotated[ActorContext, Depends(require_permission(UserRole.INSTRUCTOR))]
        ):
            ...
    """

    async def permission_checker(
        actor: Annotated[ActorContext, Depends(get_current_actor)],
    ) -> ActorContext:
        if not actor.has_role(required_role):
            raise ForbiddenError("Insufficient permission", "insufficient_role")
        return actor

    return permission_checker


CurrentActor = Annotated[ActorContext, Depends(get_current_actor)]
InstructorActor = Annotated[
    ActorContext, Depends(require_permission(UserRole.INSTRUCTOR))
]

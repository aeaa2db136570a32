"""Caller identity passed explicitly into service calls."""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from learnhub.auth.permissions import UserRole, has_permission, is_admin


@dataclass(frozen=True)
class ActorContext:
    """Authenticated caller of a service operation."""

    user_id: UUID
    role: UserRole
    email: str | None = None
    name: str | None = None

    @classmethod
    def from_token_payload(cls, payload: dict[str, Any]) -> "ActorContext":
        return cls(
            user_id=UUID(str(payload["sub"])),
            role=UserRole(payload["role"]),
            email=payload.get("email"),
            name=payload.get("name"),
        )

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    def has_role(self, required: UserRole) -> bool:
        return has_permission(self.role, required)

    @property
    def display_name(self) -> str:
        return self.name or self.email or str(self.user_id)

from learnhub.auth.context import ActorContext
from learnhub.auth.permissions import UserRole


__all__ = ["ActorContext", "UserRole"]

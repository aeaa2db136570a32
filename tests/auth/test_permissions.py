"""Tests for auth permissions."""

from uuid import uuid4

import pytest

from learnhub.auth.context import ActorContext
from learnhub.auth.permissions import (
    ROLE_HIERARCHY,
    UserRole,
    get_role_level,
    has_permission,
    is_admin,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.STUDENT.value == "student"
        assert UserRole.INSTRUCTOR.value == "instructor"
        assert UserRole.ADMIN.value == "admin"

    def test_role_hierarchy(self) -> None:
        """Roles should have correct hierarchy levels."""
        assert ROLE_HIERARCHY[UserRole.STUDENT] == 0
        assert ROLE_HIERARCHY[UserRole.INSTRUCTOR] == 1
        assert ROLE_HIERARCHY[UserRole.ADMIN] == 2

    def test_all_roles_have_levels(self) -> None:
        """All UserRole members should have defined levels."""
        for role in UserRole:
            assert role in ROLE_HIERARCHY


class TestGetRoleLevel:
    """Tests for get_role_level function."""

    @pytest.mark.parametrize(
        "role,expected_level",
        [
            (UserRole.STUDENT, 0),
            (UserRole.INSTRUCTOR, 1),
            (UserRole.ADMIN, 2),
            ("instructor", 1),
        ],
    )
    def test_known_roles(self, role: UserRole | str, expected_level: int) -> None:
        assert get_role_level(role) == expected_level

    def test_unknown_role_gets_lowest_level(self) -> None:
        assert get_role_level("superuser") == 0


class TestHasPermission:
    """Tests for has_permission function."""

    @pytest.mark.parametrize(
        "user_role,required_role,expected",
        [
            (UserRole.ADMIN, UserRole.INSTRUCTOR, True),
            (UserRole.ADMIN, UserRole.STUDENT, True),
            (UserRole.INSTRUCTOR, UserRole.INSTRUCTOR, True),
            (UserRole.INSTRUCTOR, UserRole.ADMIN, False),
            (UserRole.STUDENT, UserRole.INSTRUCTOR, False),
            ("student", "student", True),
        ],
    )
    def test_hierarchy(
        self,
        user_role: UserRole | str,
        required_role: UserRole | str,
        expected: bool,
    ) -> None:
        assert has_permission(user_role, required_role) is expected

    def test_is_admin(self) -> None:
        assert is_admin(UserRole.ADMIN)
        assert not is_admin(UserRole.INSTRUCTOR)


class TestActorContext:
    """Tests for the caller context built from token claims."""

    def test_from_token_payload(self) -> None:
        user_id = uuid4()
        actor = ActorContext.from_token_payload(
            {"sub": str(user_id), "email": "a@test.com", "role": "instructor"}
        )
        assert actor.user_id == user_id
        assert actor.role is UserRole.INSTRUCTOR
        assert actor.has_role(UserRole.STUDENT)
        assert not actor.is_admin

    def test_unknown_role_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            ActorContext.from_token_payload(
                {"sub": str(uuid4()), "email": "a@test.com", "role": "root"}
            )

    def test_display_name_falls_back_to_email(self) -> None:
        actor = ActorContext(user_id=uuid4(), role=UserRole.STUDENT, email="a@test.com")
        assert actor.display_name == "a@test.com"

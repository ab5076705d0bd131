"""Tests for auth permissions."""

import pytest

from src.auth.permissions import (
    ROLE_HIERARCHY,
    UserRole,
    get_role_level,
    has_permission,
    is_admin,
    parse_role,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_hierarchy(self) -> None:
        """Roles should have correct hierarchy levels."""
        assert ROLE_HIERARCHY[UserRole.STUDENT] == 0
        assert ROLE_HIERARCHY[UserRole.INSTRUCTOR] == 1
        assert ROLE_HIERARCHY[UserRole.ADMIN] == 2

    def test_all_roles_have_levels(self) -> None:
        for role in UserRole:
            assert role in ROLE_HIERARCHY


class TestParseRole:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("admin", UserRole.ADMIN),
            ("ADMIN", UserRole.ADMIN),
            ("instructor", UserRole.INSTRUCTOR),
            ("student", UserRole.STUDENT),
            ("superuser", UserRole.STUDENT),
            ("", UserRole.STUDENT),
            (None, UserRole.STUDENT),
        ],
    )
    def test_parse_role(self, value, expected: UserRole) -> None:
        assert parse_role(value) == expected


class TestHasPermission:
    @pytest.mark.parametrize(
        "user_role,required_role,expected",
        [
            (UserRole.ADMIN, UserRole.ADMIN, True),
            (UserRole.ADMIN, UserRole.STUDENT, True),
            (UserRole.INSTRUCTOR, UserRole.STUDENT, True),
            (UserRole.INSTRUCTOR, UserRole.ADMIN, False),
            (UserRole.STUDENT, UserRole.INSTRUCTOR, False),
            ("student", "instructor", False),
            ("unknown", UserRole.STUDENT, True),
        ],
    )
    def test_has_permission(self, user_role, required_role, expected: bool) -> None:
        assert has_permission(user_role, required_role) is expected

    def test_unknown_string_counts_as_student(self) -> None:
        assert get_role_level("unknown") == 0


def test_is_admin() -> None:
    assert is_admin(UserRole.ADMIN) is True
    assert is_admin("instructor") is False

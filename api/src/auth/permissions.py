"""Role-based access control.

Hierarchical roles:
- ADMIN (level 2): grades submissions and performs overrides
- INSTRUCTOR (level 1): reads cohort progress and submissions
- STUDENT (level 0): works through the program
"""

from enum import Enum


class UserRole(str, Enum):
    """Platform roles. Higher level means more permissions."""

    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.STUDENT: 0,
    UserRole.INSTRUCTOR: 1,
    UserRole.ADMIN: 2,
}


def parse_role(value: str | None) -> UserRole:
    """Parse a role claim, defaulting unknown or missing values to STUDENT."""
    if not value:
        return UserRole.STUDENT
    try:
        return UserRole(value.lower())
    except ValueError:
        return UserRole.STUDENT


def get_role_level(role: UserRole | str) -> int:
    """Permission level for a role; unknown strings count as STUDENT."""
    if isinstance(role, str) and not isinstance(role, UserRole):
        role = parse_role(role)
    return ROLE_HIERARCHY[role]


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.INSTRUCTOR)
        True
        >>> has_permission("student", "instructor")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    return get_role_level(role) == ROLE_HIERARCHY[UserRole.ADMIN]

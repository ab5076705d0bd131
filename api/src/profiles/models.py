"""Database models for user profiles.

One row per identity-provider user, created on first authenticated visit.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from src.auth.permissions import UserRole, parse_role
from src.utils import ensure_utc_aware, utc_now


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

PROFILES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.profiles (
    user_id UUID PRIMARY KEY,
    email TEXT,
    full_name TEXT,
    role TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

PROFILES_TABLES_CQL = [PROFILES_TABLE_CQL]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Profile:
    """Display profile of a platform user."""

    def __init__(
        self,
        user_id: UUID,
        email: str,
        full_name: str | None = None,
        role: UserRole | str = UserRole.STUDENT,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.email = email
        self.full_name = full_name
        self.role = parse_role(role) if isinstance(role, str) else role
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_row(cls, row: Any) -> "Profile":
        """Create Profile instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            email=row.email or "",
            full_name=row.full_name,
            role=row.role or UserRole.STUDENT.value,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Profile {self.email} ({self.role.value})>"

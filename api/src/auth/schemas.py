"""Pydantic schemas for the authenticated caller."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.auth.permissions import UserRole


class Principal(BaseModel):
    """Caller identity derived from a verified bearer token."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str = ""
    role: UserRole = UserRole.STUDENT
    full_name: str | None = Field(default=None, description="Display name claim")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

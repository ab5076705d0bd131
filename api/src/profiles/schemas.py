"""Pydantic schemas for user profiles."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.auth.permissions import UserRole

from .models import Profile


class UpdateProfileRequest(BaseModel):
    """Update the caller's display name."""

    full_name: str = Field(..., min_length=1, max_length=120)


class ProfileResponse(BaseModel):
    """Profile as shown to its owner and to administrators."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email: str
    full_name: str | None
    role: UserRole
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, entity: Profile) -> "ProfileResponse":
        return cls(**entity.to_dict())

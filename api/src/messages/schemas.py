"""Pydantic schemas for feedback messages."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import MESSAGE_MAX_LENGTH, Message


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)
    user_full_name: str | None = Field(
        default=None,
        max_length=120,
        description="Display name; defaults to the sender's profile name",
    )


class MessageResponse(BaseModel):
    message_id: UUID
    user_id: UUID
    user_full_name: str | None
    content: str
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: Message) -> "MessageResponse":
        return cls(**entity.to_dict())


class UnreadCountResponse(BaseModel):
    unread_count: int

"""Database models for student feedback messages.

Cassandra table definitions for:
- messages: one row per message, looked up by id
- messages_by_time: the admin inbox, newest first in a single partition

Both tables are written on send and on mark-read.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from src.utils import ensure_utc_aware, utc_now


MESSAGE_MAX_LENGTH = 2000

# Single inbox partition; message volume is a handful per student
INBOX = "all"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

MESSAGES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.messages (
    message_id UUID PRIMARY KEY,
    user_id UUID,
    user_full_name TEXT,
    content TEXT,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    created_at TIMESTAMP
)
"""

MESSAGES_BY_TIME_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.messages_by_time (
    inbox TEXT,
    created_at TIMESTAMP,
    message_id UUID,
    user_id UUID,
    user_full_name TEXT,
    content TEXT,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    PRIMARY KEY ((inbox), created_at, message_id)
) WITH CLUSTERING ORDER BY (created_at DESC, message_id ASC)
"""

MESSAGES_TABLES_CQL = [
    MESSAGES_TABLE_CQL,
    MESSAGES_BY_TIME_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Message:
    """Feedback message sent by a student to the administrators."""

    def __init__(
        self,
        user_id: UUID,
        content: str,
        user_full_name: str | None = None,
        message_id: UUID | None = None,
        is_read: bool = False,
        read_at: datetime | None = None,
        created_at: datetime | None = None,
    ):
        self.message_id = message_id or uuid4()
        self.user_id = user_id
        self.user_full_name = user_full_name
        self.content = content
        self.is_read = is_read
        self.read_at = ensure_utc_aware(read_at)
        self.created_at = ensure_utc_aware(created_at) or utc_now()

    @classmethod
    def from_row(cls, row: Any) -> "Message":
        return cls(
            message_id=row.message_id,
            user_id=row.user_id,
            user_full_name=row.user_full_name,
            content=row.content,
            is_read=bool(row.is_read),
            read_at=row.read_at,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "user_id": self.user_id,
            "user_full_name": self.user_full_name,
            "content": self.content,
            "is_read": self.is_read,
            "read_at": self.read_at,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Message {self.message_id} read={self.is_read}>"

# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Message service layer.

Business logic for:
- Students sending feedback messages
- Administrators listing the inbox and marking messages read
- The cached unread counter
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.redis import unread_messages_key
from src.utils import utc_now

from .models import INBOX, MESSAGE_MAX_LENGTH, Message


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

logger = structlog.get_logger(__name__)

UNREAD_CACHE_TTL_SECONDS = 300


class MessageError(Exception):
    """Base message error."""

    def __init__(self, message: str, code: str = "message_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class MessageNotFoundError(MessageError):
    def __init__(self, message: str = "Message not found"):
        super().__init__(message, "message_not_found")


class InvalidMessageError(MessageError):
    def __init__(self, message: str):
        super().__init__(message, "invalid_message")


class MessageService:
    """Service for the student to administrator feedback channel."""

    def __init__(self, session: "Session", keyspace: str, redis: "Redis | None" = None):
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert_message = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.messages
            (message_id, user_id, user_full_name, content, is_read, read_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_inbox = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.messages_by_time
            (inbox, created_at, message_id, user_id, user_full_name, content,
             is_read, read_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_message = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.messages WHERE message_id = ?
        """)
        self._list_inbox = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.messages_by_time
            WHERE inbox = ? LIMIT ?
        """)
        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.messages
            SET is_read = true, read_at = ?
            WHERE message_id = ?
        """)
        self._mark_inbox_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.messages_by_time
            SET is_read = true, read_at = ?
            WHERE inbox = ? AND created_at = ? AND message_id = ?
        """)
        self._count_unread = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.messages_by_time
            WHERE inbox = ? AND is_read = false ALLOW FILTERING
        """)

    async def send_message(
        self, user_id: UUID, content: str, user_full_name: str | None = None
    ) -> Message:
        """Store a message from a student.

        Raises:
            InvalidMessageError: Content is blank or too long
        """
        content = content.strip()
        if not content:
            raise InvalidMessageError("Message content cannot be empty")
        if len(content) > MESSAGE_MAX_LENGTH:
            msg = f"Message content exceeds {MESSAGE_MAX_LENGTH} characters"
            raise InvalidMessageError(msg)

        message = Message(user_id=user_id, content=content, user_full_name=user_full_name)
        await self.session.aexecute(
            self._insert_message,
            [
                message.message_id,
                message.user_id,
                message.user_full_name,
                message.content,
                False,
                None,
                message.created_at,
            ],
        )
        await self.session.aexecute(
            self._insert_inbox,
            [
                INBOX,
                message.created_at,
                message.message_id,
                message.user_id,
                message.user_full_name,
                message.content,
                False,
                None,
            ],
        )
        await self._invalidate_cache()

        logger.info("message_sent", message_id=str(message.message_id))
        return message

    async def list_messages(
        self, limit: int = 100, unread_only: bool = False
    ) -> list[Message]:
        """Inbox, newest first."""
        result = await self.session.aexecute(self._list_inbox, [INBOX, limit])
        messages = [Message.from_row(row) for row in result]
        if unread_only:
            messages = [m for m in messages if not m.is_read]
        return messages

    async def get_message(self, message_id: UUID) -> Message | None:
        result = await self.session.aexecute(self._get_message, [message_id])
        row = result.one()
        return Message.from_row(row) if row else None

    async def mark_read(self, message_id: UUID) -> Message:
        """Mark a message read. Marking an already read message is a no-op.

        Raises:
            MessageNotFoundError: Unknown message id
        """
        message = await self.get_message(message_id)
        if message is None:
            raise MessageNotFoundError
        if message.is_read:
            return message

        now = utc_now()
        await self.session.aexecute(self._mark_read, [now, message_id])
        await self.session.aexecute(
            self._mark_inbox_read, [now, INBOX, message.created_at, message_id]
        )
        await self._invalidate_cache()

        message.is_read = True
        message.read_at = now
        return message

    async def get_unread_count(self) -> int:
        """Unread messages in the inbox, cached for five minutes."""
        if self.redis:
            cached = await self.redis.get(unread_messages_key())
            if cached is not None:
                return int(cached)

        result = await self.session.aexecute(self._count_unread, [INBOX])
        row = result.one()
        count = row.count if row and row.count else 0

        if self.redis:
            await self.redis.setex(
                unread_messages_key(),
                UNREAD_CACHE_TTL_SECONDS,
                str(count),
            )

        return count

    async def _invalidate_cache(self) -> None:
        if not self.redis:
            return
        await self.redis.delete(unread_messages_key())

"""Audit trail for administrative overrides.

Every entry goes to the ``audit`` log file and to the admin_audit_log table.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from src.core.logging import get_audit_logger
from src.utils import dumps_json

from .models import AuditEntry


if TYPE_CHECKING:
    from cassandra.cluster import Session


class CassandraAuditLog:
    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._logger = get_audit_logger()
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert_entry = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.admin_audit_log
            (user_id, created_at, audit_id, actor_id, action,
             module_id, chapter_id, details)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_entries = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.admin_audit_log
            WHERE user_id = ? LIMIT ?
        """)

    async def record(self, entry: AuditEntry) -> None:
        self._logger.info(
            "admin_override",
            action=entry.action.value,
            audit_id=str(entry.audit_id),
            actor_id=str(entry.actor_id),
            student_id=str(entry.user_id),
            module_id=entry.module_id,
            chapter_id=entry.chapter_id,
            details=entry.details,
        )
        await self.session.aexecute(
            self._insert_entry,
            [
                entry.user_id,
                entry.created_at,
                entry.audit_id,
                entry.actor_id,
                entry.action.value,
                entry.module_id,
                entry.chapter_id,
                dumps_json(entry.details),
            ],
        )

    async def list_entries(self, user_id: UUID, limit: int = 50) -> list[AuditEntry]:
        """Newest entries first."""
        result = await self.session.aexecute(self._list_entries, [user_id, limit])
        return [AuditEntry.from_row(row) for row in result]

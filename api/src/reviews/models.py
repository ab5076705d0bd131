"""Database models for administrative overrides.

Cassandra table definitions for:
- admin_audit_log: one row per override (grade, rollback, forced unlock,
  attempt reset, conditional access), newest first per student
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.utils import ensure_utc_aware, loads_json, utc_now


class AuditAction(str, Enum):
    GRADE = "grade"
    ROLLBACK = "rollback"
    FORCED_UNLOCK = "forced_unlock"
    ATTEMPT_RESET = "attempt_reset"
    CONDITIONAL_ACCESS = "conditional_access"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ADMIN_AUDIT_LOG_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.admin_audit_log (
    user_id UUID,
    created_at TIMESTAMP,
    audit_id UUID,
    actor_id UUID,
    action TEXT,
    module_id INT,
    chapter_id INT,
    details TEXT,
    PRIMARY KEY ((user_id), created_at, audit_id)
) WITH CLUSTERING ORDER BY (created_at DESC, audit_id ASC)
"""

REVIEWS_TABLES_CQL = [ADMIN_AUDIT_LOG_TABLE_CQL]


# ==============================================================================
# Entity Classes
# ==============================================================================


class AuditEntry:
    """One administrative action on a student's progress."""

    def __init__(
        self,
        user_id: UUID,
        actor_id: UUID,
        action: AuditAction | str,
        module_id: int | None = None,
        chapter_id: int | None = None,
        details: dict[str, Any] | None = None,
        audit_id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.audit_id = audit_id or uuid4()
        self.user_id = user_id
        self.actor_id = actor_id
        self.action = AuditAction(action)
        self.module_id = module_id
        self.chapter_id = chapter_id
        self.details = details or {}
        self.created_at = ensure_utc_aware(created_at) or utc_now()

    @classmethod
    def from_row(cls, row: Any) -> "AuditEntry":
        return cls(
            audit_id=row.audit_id,
            user_id=row.user_id,
            actor_id=row.actor_id,
            action=row.action,
            module_id=row.module_id,
            chapter_id=row.chapter_id,
            details=loads_json(row.details, default={}),
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "audit_id": self.audit_id,
            "user_id": self.user_id,
            "actor_id": self.actor_id,
            "action": self.action.value,
            "module_id": self.module_id,
            "chapter_id": self.chapter_id,
            "details": self.details,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<AuditEntry {self.action.value} user={self.user_id}>"

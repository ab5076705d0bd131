"""Progression service: loads progress and evaluates module gating."""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.database.errors import STORAGE_ERRORS
from src.curriculum.registry import ProgramRegistry
from src.progress.models import ProgressRecord

from .evaluator import ProgressionSnapshot, evaluate


if TYPE_CHECKING:
    from src.progress.store import CassandraProgressStore

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressionError(Exception):
    """Base progression error."""

    def __init__(self, message: str, code: str = "progression_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ModuleLockedError(ProgressionError):
    def __init__(self, message: str = "Complete the previous module first"):
        super().__init__(message, "module_locked")


class ProgressUnavailableError(ProgressionError):
    def __init__(
        self, message: str = "Progress could not be loaded, please try again"
    ):
        super().__init__(message, "progress_unavailable")


# ==============================================================================
# Progression Service
# ==============================================================================


class ProgressionService:
    """Answers "which modules may this student open?"."""

    def __init__(self, store: "CassandraProgressStore", registry: ProgramRegistry):
        self.store = store
        self.registry = registry

    async def overview(
        self, user_id: UUID
    ) -> tuple[ProgressionSnapshot, list[ProgressRecord]]:
        """Gating snapshot plus the records it was computed from.

        Storage errors fail closed: the snapshot locks every gated module and
        the record list is empty.
        """
        try:
            records = await self.store.list_records(user_id)
        except STORAGE_ERRORS as e:
            logger.error(
                "progress_load_failed",
                student_id=str(user_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return evaluate(self.registry, None), []
        return evaluate(self.registry, records), records

    async def snapshot(self, user_id: UUID) -> ProgressionSnapshot:
        snapshot, _ = await self.overview(user_id)
        return snapshot

    async def assert_module_unlocked(self, user_id: UUID, module_id: int) -> None:
        """Raise unless the student may work in ``module_id``.

        Raises:
            ProgressUnavailableError: Progress could not be loaded (fail closed)
            ModuleLockedError: The previous module is not completed
        """
        snapshot = await self.snapshot(user_id)
        if not snapshot.is_locked(module_id):
            return
        if not snapshot.progress_available:
            raise ProgressUnavailableError
        logger.info("module_access_denied", module_id=module_id)
        raise ModuleLockedError

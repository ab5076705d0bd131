"""Module gating.

Pure logic over a student's progress records and the program registry:

- the first module is always unlocked
- module N+1 is unlocked when module N's completion rule holds, or when an
  administrator granted conditional access on module N
- with no progress data every module after the first is locked

The overall completion percentage is informational only and never feeds a
gating decision.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from src.curriculum.registry import CompletionRuleKind, ModuleEntry, ProgramRegistry
from src.progress.models import ProgressRecord
from src.quizzes.grading import percentage


CONDITIONAL_ACCESS_KEY = "conditional_access"


class ProgramStatus(str, Enum):
    """Terminal outcome of the whole program."""

    IN_PROGRESS = "in_progress"
    CERTIFIED = "certified"  # every module completed
    CONDITIONAL = "conditional"  # finished with at least one pending retake


@dataclass(frozen=True)
class ModuleState:
    module_id: int
    slug: str
    title: str
    locked: bool
    completed: bool
    conditional: bool
    completed_chapters: int


@dataclass(frozen=True)
class ProgressionSnapshot:
    modules: tuple[ModuleState, ...]
    program_status: ProgramStatus
    completion_percent: int
    progress_available: bool = True

    def get(self, module_id: int) -> ModuleState | None:
        return next((m for m in self.modules if m.module_id == module_id), None)

    def is_locked(self, module_id: int) -> bool:
        """Locked state of a module; modules outside the registry are not gated."""
        state = self.get(module_id)
        return state.locked if state else False


def is_module_satisfied(entry: ModuleEntry, records: list[ProgressRecord]) -> bool:
    """Whether a module's completion rule holds for the given records."""
    rule = entry.completion_rule
    if rule.kind == CompletionRuleKind.GATE_CHAPTER:
        return any(
            r.chapter_id == entry.gate_chapter_id and r.completed for r in records
        )
    completed = sum(1 for r in records if r.module_id == entry.module_id and r.completed)
    return completed >= rule.min_completed


def has_conditional_access(entry: ModuleEntry, records: list[ProgressRecord]) -> bool:
    """Whether an administrator granted conditional access past this module."""
    if entry.record_chapter_id is None:
        return False
    record = next((r for r in records if r.chapter_id == entry.record_chapter_id), None)
    return bool(record and record.responses.get(CONDITIONAL_ACCESS_KEY) is True)


def locked_snapshot(registry: ProgramRegistry) -> ProgressionSnapshot:
    """Fail-closed result used when progress data could not be loaded."""
    return ProgressionSnapshot(
        modules=tuple(
            ModuleState(
                module_id=entry.module_id,
                slug=entry.slug,
                title=entry.title,
                locked=index > 0,
                completed=False,
                conditional=False,
                completed_chapters=0,
            )
            for index, entry in enumerate(registry.modules)
        ),
        program_status=ProgramStatus.IN_PROGRESS,
        completion_percent=0,
        progress_available=False,
    )


def completion_percent(
    registry: ProgramRegistry, records: list[ProgressRecord]
) -> int:
    """Completed registered chapters over all registered chapters, capped at 100."""
    registered = {entry.module_id for entry in registry.modules}
    completed = {
        r.chapter_id for r in records if r.completed and r.module_id in registered
    }
    return min(percentage(len(completed), registry.total_chapters), 100)


def evaluate(
    registry: ProgramRegistry,
    records: Iterable[ProgressRecord] | None,
) -> ProgressionSnapshot:
    """Compute locked/completed/conditional state for every module."""
    if records is None:
        return locked_snapshot(registry)

    records = list(records)
    states: list[ModuleState] = []
    previous_opens_next = True

    for entry in registry.modules:
        completed = is_module_satisfied(entry, records)
        conditional = not completed and has_conditional_access(entry, records)
        states.append(
            ModuleState(
                module_id=entry.module_id,
                slug=entry.slug,
                title=entry.title,
                locked=not previous_opens_next,
                completed=completed,
                conditional=conditional,
                completed_chapters=sum(
                    1 for r in records if r.module_id == entry.module_id and r.completed
                ),
            )
        )
        previous_opens_next = completed or conditional

    if all(s.completed for s in states):
        program_status = ProgramStatus.CERTIFIED
    elif all(s.completed or s.conditional for s in states):
        program_status = ProgramStatus.CONDITIONAL
    else:
        program_status = ProgramStatus.IN_PROGRESS

    return ProgressionSnapshot(
        modules=tuple(states),
        program_status=program_status,
        completion_percent=completion_percent(registry, records),
    )

"""Module gating and program status."""

from .evaluator import ModuleState, ProgramStatus, ProgressionSnapshot, evaluate


__all__ = ["ModuleState", "ProgramStatus", "ProgressionSnapshot", "evaluate"]

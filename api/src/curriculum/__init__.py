"""Curriculum content and the program registry.

Provides:
- Modules, chapters and fixed-choice questions
- The ordered module registry consumed by gating and review
"""

from .models import CURRICULUM_TABLES_CQL, Chapter, Module, Question
from .registry import ModuleEntry, ProgramRegistry, load_program_registry


__all__ = [
    "CURRICULUM_TABLES_CQL",
    "Chapter",
    "Module",
    "ModuleEntry",
    "ProgramRegistry",
    "Question",
    "load_program_registry",
]

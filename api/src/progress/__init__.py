"""Student progress storage.

Provides:
- Per (user, chapter) progress records with the activity metadata blob
- Append-only quiz attempt log
"""

from .models import PROGRESS_TABLES_CQL, ProgressRecord, QuizAttempt
from .store import CassandraProgressStore


__all__ = [
    "PROGRESS_TABLES_CQL",
    "CassandraProgressStore",
    "ProgressRecord",
    "QuizAttempt",
]

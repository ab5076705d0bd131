"""Student to administrator feedback messages."""

from .models import MESSAGES_TABLES_CQL, Message


__all__ = ["MESSAGES_TABLES_CQL", "Message"]

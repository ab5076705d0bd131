"""User profiles mirrored from the identity provider."""

from .models import PROFILES_TABLES_CQL, Profile


__all__ = ["PROFILES_TABLES_CQL", "Profile"]

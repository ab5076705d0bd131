"""Authentication against the external identity provider.

Provides:
- Bearer token verification
- Role hierarchy and permission checks
- FastAPI dependencies for the current principal
"""

from .permissions import UserRole, has_permission
from .schemas import Principal


__all__ = ["Principal", "UserRole", "has_permission"]

"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current principal extraction from the identity provider's JWT
- Role-based access control
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from src.auth.permissions import UserRole, has_permission
from src.auth.schemas import Principal
from src.auth.security import decode_access_token, principal_from_claims
from src.core.context import set_user_id, set_user_role


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal:
    """Get the authenticated principal from the bearer token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        principal = principal_from_claims(decode_access_token(token))
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    # Include caller in every subsequent log line
    set_user_id(principal.id)
    set_user_role(principal.role.value)

    return principal


def require_permission(required_role: UserRole):
    """Create dependency requiring at least a permission level.

    Uses hierarchical comparison: ADMIN >= INSTRUCTOR >= STUDENT
    """

    async def permission_checker(
        user: Annotated[Principal, Depends(get_current_user)],
    ) -> Principal:
        if not has_permission(user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return permission_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[Principal, Depends(get_current_user)]
InstructorUser = Annotated[Principal, Depends(require_permission(UserRole.INSTRUCTOR))]
AdminUser = Annotated[Principal, Depends(require_permission(UserRole.ADMIN))]

"""Bearer token verification.

Sign-up, sign-in and session refresh live in the external identity provider.
This API only verifies the provider's HS256 access tokens and turns their
claims into a :class:`Principal`.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from src.auth.permissions import UserRole, parse_role
from src.auth.schemas import Principal
from src.config.settings import get_settings


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates the signature, expiration and, when ``auth_audience`` is set,
    the audience.

    Raises:
        JWTError: If token is invalid, expired or lacks a subject
    """
    settings = get_settings()

    options = {"verify_aud": settings.auth_audience is not None}
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
        options=options,
    )

    if not payload.get("sub"):
        msg = "Token missing 'sub' claim"
        raise JWTError(msg)

    return payload


def _claim(payload: dict[str, Any], path: str) -> Any:
    """Resolve a dotted claim path such as ``app_metadata.role``."""
    value: Any = payload
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build the authenticated principal from verified claims.

    Raises:
        JWTError: If the subject is not a UUID
    """
    settings = get_settings()

    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError as e:
        msg = "Token subject is not a valid user id"
        raise JWTError(msg) from e

    email = str(payload.get("email") or "").lower()
    role = parse_role(_claim(payload, settings.auth_role_claim))
    if email and email in {e.lower() for e in settings.auth_admin_emails}:
        role = UserRole.ADMIN

    full_name = _claim(payload, "user_metadata.full_name") or payload.get("name")

    return Principal(id=user_id, email=email, role=role, full_name=full_name)


def create_access_token(
    user_id: UUID,
    email: str,
    role: UserRole | str = UserRole.STUDENT,
    expires_delta: timedelta | None = None,
    **claims: Any,
) -> str:
    """Issue a token shaped like the identity provider's.

    Used by local tooling and tests; production tokens come from the provider.
    """
    settings = get_settings()
    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.auth_dev_token_expire_minutes)
    )

    role_value = role.value if isinstance(role, UserRole) else role
    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": expire,
        **claims,
    }

    # Nest the role under the configured claim path
    target = to_encode
    *parents, leaf = settings.auth_role_claim.split(".")
    for part in parents:
        target = target.setdefault(part, {})
    target[leaf] = role_value

    if settings.auth_audience is not None:
        to_encode["aud"] = settings.auth_audience

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )

"""Profile service layer.

Profiles mirror identity-provider users. The stored role always follows the
role carried by the caller's latest token.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.auth.schemas import Principal
from src.utils import utc_now

from .models import Profile


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class ProfileError(Exception):
    """Base profile error."""

    def __init__(self, message: str, code: str = "profile_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ProfileNotFoundError(ProfileError):
    def __init__(self, message: str = "Profile not found"):
        super().__init__(message, "profile_not_found")


class ProfileService:
    """Service for reading and maintaining user profiles."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_profile = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.profiles WHERE user_id = ?
        """)

        self._list_profiles = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.profiles
        """)

        self._upsert_profile = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.profiles
            (user_id, email, full_name, role, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

    async def get_profile(self, user_id: UUID) -> Profile | None:
        result = await self.session.aexecute(self._get_profile, [user_id])
        row = result.one()
        return Profile.from_row(row) if row else None

    async def require_profile(self, user_id: UUID) -> Profile:
        """Get a profile or raise ProfileNotFoundError."""
        profile = await self.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError
        return profile

    async def list_profiles(self) -> list[Profile]:
        """All profiles. Cohorts are small, so a full scan is acceptable."""
        result = await self.session.aexecute(self._list_profiles)
        return [Profile.from_row(row) for row in result]

    async def list_students(self, search: str | None = None) -> list[Profile]:
        """Non-admin profiles, optionally filtered by email or name substring."""
        needle = search.strip().lower() if search else None
        students = []
        for profile in await self.list_profiles():
            if profile.is_admin:
                continue
            if needle and not (
                needle in profile.email.lower()
                or needle in (profile.full_name or "").lower()
            ):
                continue
            students.append(profile)
        return sorted(students, key=lambda p: p.display_name.lower())

    async def ensure_profile(self, principal: Principal) -> Profile:
        """Return the caller's profile, creating or refreshing it from the token."""
        profile = await self.get_profile(principal.id)

        if profile is None:
            profile = Profile(
                user_id=principal.id,
                email=principal.email,
                full_name=principal.full_name,
                role=principal.role,
            )
            await self._save(profile)
            logger.info("profile_created", profile_user_id=str(principal.id))
            return profile

        if profile.email != principal.email or profile.role != principal.role:
            profile.email = principal.email
            profile.role = principal.role
            profile.updated_at = utc_now()
            await self._save(profile)

        return profile

    async def update_profile(self, principal: Principal, full_name: str) -> Profile:
        profile = await self.ensure_profile(principal)
        profile.full_name = full_name.strip()
        profile.updated_at = utc_now()
        await self._save(profile)
        logger.info("profile_updated", profile_user_id=str(principal.id))
        return profile

    async def _save(self, profile: Profile) -> None:
        await self.session.aexecute(
            self._upsert_profile,
            [
                profile.user_id,
                profile.email,
                profile.full_name,
                profile.role.value,
                profile.created_at,
                profile.updated_at,
            ],
        )

"""
letlog.auth.profiles

Role lookup for resolved principals.

Responsibilities:
- Define the profile-store boundary used by the access middleware.
- Read roles from the `profiles` table.
- Apply the fail-open role policy: lookup errors and missing rows resolve to
  the default role instead of blocking the request.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from letlog.auth.models import Identity, Principal, Role, default_role
from letlog.db.repositories.profiles import ProfileRepo
from letlog.observability.logging import get_logger

log = get_logger(__name__)


class ProfileLookupError(Exception):
    pass


class ProfileStore(Protocol):
    async def get_role(self, principal_id: str) -> Role | None: ...


class SqlProfileStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_role(self, principal_id: str) -> Role | None:
        try:
            async with self._session_factory() as session:
                return await ProfileRepo(session).role_of(principal_id)
        except (SQLAlchemyError, LookupError) as e:
            # LookupError: a stored value outside the Role enum.
            raise ProfileLookupError(str(e)) from e


async def resolve_role(store: ProfileStore, principal: Principal) -> Identity:
    try:
        stored = await store.get_role(principal.subject)
    except ProfileLookupError as e:
        log.warning("role_lookup_failed", subject=principal.subject, error=str(e))
        stored = None
    return Identity(principal=principal, role=default_role(stored))


# --- Module Notes -----------------------------------------------------------
# Authentication is fail-closed (no valid token, no principal); role lookup is
# fail-open. Keep the two policies in separate modules so each can be audited.

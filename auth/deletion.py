"""
auth/deletion.py -- Soft-delete coordinator for user accounts.

Deleting a user is three mutations applied as one unit:
  1. stamp users.deleted_at (only if the user is still live)
  2. stamp deleted_at on every owned resource that does not already have one
  3. hard-delete every refresh-token row the user owns

All three share one transaction. A user marked deleted whose sessions still
refresh, or revoked sessions on a user that is still live, must never be
observable. Audit history is not touched: audit_logs has no foreign keys and
keeps referring to the deleted id.

Owned resources are reached through the OwnedResources protocol so this
module does not import todos/ (see the layer rule in auth/__init__.py).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncConnection

from auth.models import Role
from auth.sessions import SessionStore
from auth.store import UserStore
from core.storage import Storage, now_iso

logger = logging.getLogger("todoguard.auth.deletion")


class OwnedResources(Protocol):
    """Anything a user owns that must disappear with them."""

    async def cascade_soft_delete_by_owner(
        self, owner_user_id: str, deleted_at: str, *, conn: AsyncConnection
    ) -> int: ...


@dataclass(frozen=True)
class DeletionSummary:
    id: str
    email: str
    role: Role
    deleted_at: str
    resources_deleted: int
    sessions_revoked: int


class SoftDeleteCoordinator:
    """Usage:
        coordinator = SoftDeleteCoordinator(storage, users, sessions, todos)
        summary = await coordinator.soft_delete_user(user_id)  # None = not found
    """

    def __init__(
        self,
        storage: Storage,
        users: UserStore,
        sessions: SessionStore,
        resources: OwnedResources,
    ) -> None:
        self.storage = storage
        self.users = users
        self.sessions = sessions
        self.resources = resources

    async def soft_delete_user(self, user_id: str) -> DeletionSummary | None:
        """Soft-delete a live user and cascade. Returns None if the user is not live."""
        user_id = user_id.strip()
        now = now_iso()

        async with self.storage.transaction() as conn:
            target = await self.users.find_by_id(user_id, conn=conn)
            if target is None:
                return None
            # Conditional on deleted_at IS NULL: a concurrent delete that won
            # the race leaves nothing for this one to do.
            if not await self.users.mark_deleted(target.id, now, conn=conn):
                return None
            resources_deleted = await self.resources.cascade_soft_delete_by_owner(target.id, now, conn=conn)
            sessions_revoked = await self.sessions.revoke_all(target.id, conn=conn)

        logger.info(
            "Soft-deleted user %s (%d resources, %d sessions)",
            target.id,
            resources_deleted,
            sessions_revoked,
        )
        return DeletionSummary(
            id=target.id,
            email=target.email,
            role=target.role,
            deleted_at=now,
            resources_deleted=resources_deleted,
            sessions_revoked=sessions_revoked,
        )

"""
auth/sessions.py -- Session registry: the refresh-token allow-list.

A refresh token is alive only while its row exists here. Signature and
expiry checks in auth/tokens.py are necessary but not sufficient; this table
is the authority. Rows are hard-deleted on logout, logout-all, rotation (the
consumed token), and owner soft-delete. Nothing here is ever soft-deleted --
a dead session has nothing worth remembering.

Rotation protocol (rotate):
  1. verify the presented token cryptographically
  2. confirm it is still on the allow-list
  3. resolve the owning user and require that the user is live
  4. consume the presented row, store a fresh refresh token, mint a fresh
     access token, return both

  Steps 2-4 run in one transaction. Step 4's consume is a conditional DELETE
  whose rowcount must be exactly 1: if a concurrent rotation got there first
  the count is 0, the transaction rolls back, and only one caller wins. Any
  failure raises AuthenticationError with the same generic message and leaves
  the allow-list exactly as it was.

Layer rule: no imports from api/, audit/, or todos/.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, ForeignKey, Index, String, Table, Text
from sqlalchemy.ext.asyncio import AsyncConnection

from auth.models import TokenPair, User
from auth.store import UserStore
from auth.tokens import sign_access, sign_refresh, verify_refresh
from core.errors import AuthenticationError
from core.storage import Storage, metadata, now_iso

logger = logging.getLogger("todoguard.auth.sessions")

REFRESH_FAILED_MESSAGE = "Invalid refresh token."

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

refresh_tokens = Table(
    "refresh_tokens",
    metadata,
    Column("token", Text, primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id"), nullable=False),
    Column("created_at", String(32), nullable=False),
)

Index("idx_refresh_tokens_user_id", refresh_tokens.c.user_id)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SessionStore:
    """Repository for the refresh-token allow-list.

    Usage:
        sessions = SessionStore(storage)
        await sessions.store(refresh_token, user.id)
        user, pair = await sessions.rotate(refresh_token, user_store)
        await sessions.revoke_all(user.id)
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def store(self, token: str, user_id: str, *, conn: AsyncConnection | None = None) -> None:
        async with self.storage.connect(conn) as c:
            await c.execute(refresh_tokens.insert().values(token=token, user_id=user_id, created_at=now_iso()))

    async def exists(self, token: str, *, conn: AsyncConnection | None = None) -> bool:
        async with self.storage.connect(conn) as c:
            row = (
                await c.execute(refresh_tokens.select().where(refresh_tokens.c.token == token))
            ).first()
        return row is not None

    async def revoke(self, token: str, *, conn: AsyncConnection | None = None) -> bool:
        """Delete one allow-list row. Returns True if a row was removed."""
        async with self.storage.connect(conn) as c:
            result = await c.execute(refresh_tokens.delete().where(refresh_tokens.c.token == token))
        return result.rowcount > 0

    async def revoke_all(self, user_id: str, *, conn: AsyncConnection | None = None) -> int:
        """Delete every allow-list row owned by user_id. Returns the count removed."""
        async with self.storage.connect(conn) as c:
            result = await c.execute(refresh_tokens.delete().where(refresh_tokens.c.user_id == user_id))
        return result.rowcount

    async def issue(self, user: User, *, conn: AsyncConnection | None = None) -> TokenPair:
        """Mint an access/refresh pair for user and allow-list the refresh token."""
        refresh = sign_refresh(user.id)
        await self.store(refresh, user.id, conn=conn)
        return TokenPair(access_token=sign_access(user), refresh_token=refresh)

    async def rotate(self, presented: str, users: UserStore) -> tuple[User, TokenPair]:
        """Exchange a live refresh token for a new pair. See module docstring."""
        user_id = verify_refresh(presented)
        if user_id is None:
            logger.info("Refresh rejected: token failed verification")
            raise AuthenticationError(REFRESH_FAILED_MESSAGE)

        async with self.storage.transaction() as conn:
            if not await self.exists(presented, conn=conn):
                logger.info("Refresh rejected: token not on allow-list (user %s)", user_id)
                raise AuthenticationError(REFRESH_FAILED_MESSAGE)

            user = await users.find_by_id(user_id, conn=conn)
            if user is None:
                logger.info("Refresh rejected: owner %s is not live", user_id)
                raise AuthenticationError(REFRESH_FAILED_MESSAGE)

            if not await self.revoke(presented, conn=conn):
                logger.warning("Refresh rejected: token consumed concurrently (user %s)", user_id)
                raise AuthenticationError(REFRESH_FAILED_MESSAGE)

            pair = await self.issue(user, conn=conn)

        return user, pair

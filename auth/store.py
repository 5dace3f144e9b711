"""
auth/store.py -- Credential store: SQLAlchemy Core persistence for users.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is among LIVE users only, enforced by a partial unique
  index (WHERE deleted_at IS NULL) so a soft-deleted account does not block
  re-registration. register() checks first for a friendly ConflictError and
  still catches IntegrityError for the race where two requests pass the check
  together [M1].

  Every lookup used by login and authorization excludes soft-deleted rows.
  find_by_id_including_deleted() exists for internal bookkeeping only and is
  never called from a login or authorization path.

Layer rule: no imports from api/, audit/, or todos/.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import Column, Index, String, Table, Text, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection
from starlette.concurrency import run_in_threadpool

from auth.models import Role, User
from auth.tokens import hash_password
from core.errors import ConflictError, ValidationError
from core.storage import Storage, metadata, now_iso

logger = logging.getLogger("todoguard.auth.store")

PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("role", String(16), nullable=False, server_default=Role.user.value),
    Column("created_at", String(32), nullable=False),
    Column("deleted_at", String(32)),  # NULL = live
)

Index(
    "uq_users_email_live",
    users.c.email,
    unique=True,
    sqlite_where=users.c.deleted_at.is_(None),
    postgresql_where=users.c.deleted_at.is_(None),
)
Index("idx_users_deleted_created", users.c.deleted_at, users.c.created_at)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_email(raw: str) -> str:
    return raw.strip().lower()


def is_valid_email(email: str) -> bool:
    """Minimal shape check: something before '@', and a '.' in the domain
    part that is neither its first nor the final character."""
    at = email.find("@")
    if at < 1:
        return False
    dot = email.find(".", at + 2)
    return dot != -1 and dot < len(email) - 1


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore(storage)
        user = await store.register("alice@x.com", "Passw0rd!")
        user = await store.find_by_email("alice@x.com")
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def register(self, email: str, raw_password: str, role: Role = Role.user) -> User:
        """Create a live user with a hashed password.

        Raises ValidationError on a malformed email or password length outside
        8-128, and ConflictError if a live user already holds the normalized
        email.
        """
        normalized = normalize_email(email)
        if not is_valid_email(normalized):
            raise ValidationError("email or password is invalid")
        if not (PASSWORD_MIN_LEN <= len(raw_password) <= PASSWORD_MAX_LEN):
            raise ValidationError("email or password is invalid")

        if await self.find_by_email(normalized) is not None:
            raise ConflictError("Email already registered.")

        password_hash = await run_in_threadpool(hash_password, raw_password)
        user = User(
            id=str(uuid.uuid4()),
            email=normalized,
            password_hash=password_hash,
            role=role,
            created_at=now_iso(),
        )
        try:
            async with self.storage.connect() as conn:
                await conn.execute(
                    users.insert().values(
                        id=user.id,
                        email=user.email,
                        password_hash=user.password_hash,
                        role=user.role.value,
                        created_at=user.created_at,
                        deleted_at=None,
                    )
                )
        except IntegrityError as exc:
            raise ConflictError("Email already registered.") from exc
        logger.info("Registered user %s", user.id)
        return user

    async def find_by_email(self, email: str, *, conn: AsyncConnection | None = None) -> User | None:
        """Look up a live user by normalized email. Returns None if absent or deleted."""
        query = users.select().where((users.c.email == normalize_email(email)) & users.c.deleted_at.is_(None))
        async with self.storage.connect(conn) as c:
            row = (await c.execute(query)).first()
        return _row_to_user(row) if row is not None else None

    async def find_by_id(self, user_id: str, *, conn: AsyncConnection | None = None) -> User | None:
        """Look up a live user by id. Returns None if absent or deleted."""
        query = users.select().where((users.c.id == user_id.strip()) & users.c.deleted_at.is_(None))
        async with self.storage.connect(conn) as c:
            row = (await c.execute(query)).first()
        return _row_to_user(row) if row is not None else None

    async def find_by_id_including_deleted(self, user_id: str) -> User | None:
        """Internal bookkeeping lookup. Never use on login or authorization paths."""
        async with self.storage.connect() as conn:
            row = (await conn.execute(users.select().where(users.c.id == user_id.strip()))).first()
        return _row_to_user(row) if row is not None else None

    async def set_role(self, user_id: str, role: Role) -> bool:
        """Set the role of a live user. Returns False if the id is not live.

        Idempotent: setting the role a user already has still returns True.
        """
        async with self.storage.connect() as conn:
            result = await conn.execute(
                users.update()
                .where((users.c.id == user_id.strip()) & users.c.deleted_at.is_(None))
                .values(role=Role(role).value)
            )
        return result.rowcount > 0

    async def list_live(self, limit: int, offset: int) -> tuple[list[User], int]:
        """Return one page of live users (oldest first) and the live total."""
        live = users.c.deleted_at.is_(None)
        async with self.storage.connect() as conn:
            total = (await conn.execute(select(func.count()).select_from(users).where(live))).scalar()
            rows = (
                await conn.execute(
                    users.select()
                    .where(live)
                    .order_by(users.c.created_at.asc(), users.c.id.asc())
                    .limit(limit)
                    .offset(offset)
                )
            ).fetchall()
        return [_row_to_user(r) for r in rows], total or 0

    async def mark_deleted(self, user_id: str, deleted_at: str, *, conn: AsyncConnection) -> bool:
        """Stamp deleted_at on a live user. Only the soft-delete coordinator calls this.

        Conditional on the row still being live, so a concurrent second
        delete of the same user sees rowcount 0 rather than re-stamping it.
        """
        result = await conn.execute(
            users.update()
            .where((users.c.id == user_id) & users.c.deleted_at.is_(None))
            .values(deleted_at=deleted_at)
        )
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )

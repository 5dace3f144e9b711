"""
todos/store.py -- SQLAlchemy Core persistence for todo items.

Pattern: Repository + Data Mapper, the same shape as auth/store.py.

Every read and write is scoped to one owner. A todo that belongs to someone
else is indistinguishable from one that does not exist: update() and
soft_delete() return None for both, and the route turns that into a 404.

Soft-deleted todos are hidden from every listing and can no longer be
patched or deleted. Nothing here hard-deletes a todo.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Table, Text, func, select
from sqlalchemy.ext.asyncio import AsyncConnection

from auth.store import users  # noqa: F401 -- registers the FK target table
from core.errors import ValidationError
from core.storage import Storage, metadata, now_iso
from todos.models import Todo

logger = logging.getLogger("todoguard.todos")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

todos = Table(
    "todos",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("owner_user_id", String(36), ForeignKey("users.id"), nullable=False),
    Column("title", Text, nullable=False),
    Column("completed", Boolean, nullable=False, default=False),
    Column("created_at", String(32), nullable=False),
    Column("deleted_at", String(32)),  # NULL = visible
)

Index("idx_todos_owner_deleted_created", todos.c.owner_user_id, todos.c.deleted_at, todos.c.created_at)


def _clean_title(raw: str | None, message: str) -> str:
    title = raw.strip() if isinstance(raw, str) else ""
    if not title:
        raise ValidationError(message)
    return title


def _visible(owner_user_id: str, todo_id: str):
    return (todos.c.id == todo_id) & (todos.c.owner_user_id == owner_user_id) & todos.c.deleted_at.is_(None)


class TodoStore:
    """Repository for Todo records.

    Usage:
        store = TodoStore(storage)
        todo = await store.create(user.id, "Buy milk")
        items, total = await store.list_by_owner(user.id, completed=False, limit=10, offset=0)
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def create(self, owner_user_id: str, title: str) -> Todo:
        """Insert a new, incomplete todo. The title is trimmed and must not be empty."""
        todo = Todo(
            id=str(uuid.uuid4()),
            title=_clean_title(title, "title is required"),
            owner_user_id=owner_user_id.strip(),
            completed=False,
            created_at=now_iso(),
        )
        async with self.storage.connect() as conn:
            await conn.execute(
                todos.insert().values(
                    id=todo.id,
                    owner_user_id=todo.owner_user_id,
                    title=todo.title,
                    completed=todo.completed,
                    created_at=todo.created_at,
                    deleted_at=None,
                )
            )
        return todo

    async def list_by_owner(
        self,
        owner_user_id: str,
        *,
        completed: bool | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Todo], int]:
        """Return one page of the owner's visible todos (oldest first) and their total."""
        conditions = [todos.c.owner_user_id == owner_user_id.strip(), todos.c.deleted_at.is_(None)]
        if completed is not None:
            conditions.append(todos.c.completed == completed)

        async with self.storage.connect() as conn:
            total = (await conn.execute(select(func.count()).select_from(todos).where(*conditions))).scalar()
            rows = (
                await conn.execute(
                    todos.select()
                    .where(*conditions)
                    .order_by(todos.c.created_at.asc(), todos.c.id.asc())
                    .limit(limit)
                    .offset(offset)
                )
            ).fetchall()
        return [_row_to_todo(r) for r in rows], total or 0

    async def update(
        self,
        owner_user_id: str,
        todo_id: str,
        *,
        title: str | None = None,
        completed: bool | None = None,
    ) -> Todo | None:
        """Patch title and/or completed. Returns None if the todo is not the owner's or is deleted."""
        if title is None and completed is None:
            raise ValidationError("patch must include title and/or completed")
        values: dict = {}
        if title is not None:
            values["title"] = _clean_title(title, "title is invalid")
        if completed is not None:
            values["completed"] = bool(completed)

        where = _visible(owner_user_id.strip(), todo_id)
        async with self.storage.transaction() as conn:
            result = await conn.execute(todos.update().where(where).values(**values))
            if result.rowcount == 0:
                return None
            row = (await conn.execute(todos.select().where(todos.c.id == todo_id))).first()
        return _row_to_todo(row)

    async def soft_delete(self, owner_user_id: str, todo_id: str) -> Todo | None:
        """Stamp deleted_at on one visible todo. Returns the deleted todo, or None."""
        now = now_iso()
        where = _visible(owner_user_id.strip(), todo_id)
        async with self.storage.transaction() as conn:
            result = await conn.execute(todos.update().where(where).values(deleted_at=now))
            if result.rowcount == 0:
                return None
            row = (await conn.execute(todos.select().where(todos.c.id == todo_id))).first()
        return _row_to_todo(row)

    async def cascade_soft_delete_by_owner(
        self, owner_user_id: str, deleted_at: str, *, conn: AsyncConnection
    ) -> int:
        """Soft-delete every visible todo of one owner inside the caller's transaction.

        Already-deleted todos keep their original deleted_at and are not counted.
        """
        result = await conn.execute(
            todos.update()
            .where((todos.c.owner_user_id == owner_user_id) & todos.c.deleted_at.is_(None))
            .values(deleted_at=deleted_at)
        )
        logger.debug("Cascade soft-deleted %d todos for %s", result.rowcount, owner_user_id)
        return result.rowcount


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_todo(row) -> Todo:
    return Todo(
        id=row.id,
        title=row.title,
        owner_user_id=row.owner_user_id,
        completed=bool(row.completed),
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )

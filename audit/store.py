"""
audit/store.py -- Append-only persistence for audit log entries.

Pattern: Repository + Data Mapper, like auth/store.py. AuditStore exposes
exactly two operations: record() appends, query() reads. There is no update
or delete method, and the audit_logs table declares no foreign keys, so
history outlives the accounts it mentions.

metadata is opaque: it is serialized to JSON text on the way in and parsed
on the way out, never inspected.

query() is the one listing in the system that is newest-first. Timestamps
can collide within a microsecond, so the autoincrement id breaks ties in
insertion order.
"""

from __future__ import annotations

import json
from typing import Optional

from sqlalchemy import Column, Index, Integer, String, Table, Text, func, select
from sqlalchemy.ext.asyncio import AsyncConnection

from audit.models import AuditAction, AuditLogEntry
from auth.models import Role
from core.errors import ValidationError
from core.storage import Storage, metadata, now_iso

# ---------------------------------------------------------------------------
# Schema -- no ForeignKey on any column
# ---------------------------------------------------------------------------

audit_logs = Table(
    "audit_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("created_at", String(32), nullable=False),
    Column("actor_user_id", String(36)),
    Column("actor_email", String(255)),
    Column("actor_role", String(16), nullable=False),
    Column("action", String(40), nullable=False),
    Column("target_user_id", String(36)),
    Column("target_resource_id", String(36)),
    Column("ip", String(45)),
    Column("user_agent", Text),
    Column("metadata_json", Text, nullable=False),
)

Index("idx_audit_created", audit_logs.c.created_at)
Index("idx_audit_action_created", audit_logs.c.action, audit_logs.c.created_at)
Index("idx_audit_actor_created", audit_logs.c.actor_user_id, audit_logs.c.created_at)
Index("idx_audit_target_created", audit_logs.c.target_user_id, audit_logs.c.created_at)


class AuditStore:
    """Repository for audit entries.

    Usage:
        audit = AuditStore(storage)
        await audit.record(AuditLogEntry(action=AuditAction.login_success, actor_user_id=uid))
        entries, total = await audit.query(action=AuditAction.login_failure, limit=10, offset=0)
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    async def record(self, entry: AuditLogEntry, *, conn: AsyncConnection | None = None) -> AuditLogEntry:
        """Append one entry. Raises ValidationError for an action outside AuditAction."""
        try:
            action = AuditAction(entry.action)
        except ValueError as exc:
            raise ValidationError(f"Unknown audit action: {entry.action!r}") from exc

        created_at = now_iso()
        async with self.storage.connect(conn) as c:
            result = await c.execute(
                audit_logs.insert().values(
                    created_at=created_at,
                    actor_user_id=entry.actor_user_id,
                    actor_email=entry.actor_email,
                    actor_role=Role(entry.actor_role).value,
                    action=action.value,
                    target_user_id=entry.target_user_id,
                    target_resource_id=entry.target_resource_id,
                    ip=entry.ip,
                    user_agent=entry.user_agent,
                    metadata_json=json.dumps(entry.metadata),
                )
            )
        entry.id = result.inserted_primary_key[0]
        entry.created_at = created_at
        entry.action = action
        return entry

    async def query(
        self,
        *,
        action: Optional[AuditAction] = None,
        actor_user_id: Optional[str] = None,
        target_user_id: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[AuditLogEntry], int]:
        """Return one page of matching entries, newest first, and the match total."""
        conditions = []
        if action is not None:
            conditions.append(audit_logs.c.action == AuditAction(action).value)
        actor_user_id = (actor_user_id or "").strip()
        target_user_id = (target_user_id or "").strip()
        if actor_user_id:
            conditions.append(audit_logs.c.actor_user_id == actor_user_id)
        if target_user_id:
            conditions.append(audit_logs.c.target_user_id == target_user_id)

        count_q = select(func.count()).select_from(audit_logs).where(*conditions)
        page_q = (
            audit_logs.select()
            .where(*conditions)
            .order_by(audit_logs.c.created_at.desc(), audit_logs.c.id.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self.storage.connect() as conn:
            total = (await conn.execute(count_q)).scalar()
            rows = (await conn.execute(page_q)).fetchall()
        return [_row_to_entry(r) for r in rows], total or 0


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_entry(row) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        created_at=row.created_at,
        actor_user_id=row.actor_user_id,
        actor_email=row.actor_email,
        actor_role=Role(row.actor_role),
        action=AuditAction(row.action),
        target_user_id=row.target_user_id,
        target_resource_id=row.target_resource_id,
        ip=row.ip,
        user_agent=row.user_agent,
        metadata=json.loads(row.metadata_json),
    )

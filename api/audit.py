"""
api/audit.py -- Request-aware wrapper around AuditStore.record().

Route handlers call record_event() after the primary action succeeds (or,
for login failures, after it fails). It snapshots who the actor was and
where the request came from:

  ip         -- first hop of X-Forwarded-For if present, else the peer address
  user_agent -- the User-Agent header, if any

An audit write that fails is logged with its traceback and otherwise
ignored: the operation being audited has already happened and the caller
still gets its response.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Request

from audit.models import AuditAction, AuditLogEntry
from audit.store import AuditStore
from auth.models import Identity, Role, User

logger = logging.getLogger("todoguard.api.audit")


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return request.client.host if request.client else None


async def record_event(
    request: Request,
    action: AuditAction,
    *,
    actor: User | Identity | None = None,
    actor_email: Optional[str] = None,
    target_user_id: Optional[str] = None,
    target_resource_id: Optional[str] = None,
    metadata: Any = None,
) -> None:
    """Append one audit entry for this request. Never raises."""
    store: AuditStore = request.app.state.audit_store
    entry = AuditLogEntry(
        action=action,
        actor_user_id=actor.id if actor is not None else None,
        actor_email=actor.email if actor is not None else actor_email,
        actor_role=actor.role if actor is not None else Role.user,
        target_user_id=target_user_id,
        target_resource_id=target_resource_id,
        ip=client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        metadata=metadata if metadata is not None else {},
    )
    try:
        await store.record(entry)
    except Exception:
        logger.exception("Audit write failed for action %s", getattr(action, "value", action))

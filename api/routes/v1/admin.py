"""
api/routes/v1/admin.py -- Admin-only user management and audit queries.

Routes:
  GET    /admin/users              -- list live users (oldest first)
  PATCH  /admin/users/{id}/role    -- set a live user's role
  GET    /admin/users/{id}/todos   -- view a live user's todos
  DELETE /admin/users/{id}         -- soft-delete a user and cascade
  GET    /admin/audit-logs         -- query the audit trail (newest first)

Every route depends on require_admin, which authenticates before it
authorizes: no token is 401, a valid non-admin token is 403. Soft-deleted
users are invisible here exactly as they are to login; naming one answers
404.

Every successful admin action except the audit query itself is written to
the audit trail.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.audit import record_event
from api.models import (
    AdminUserOut,
    AuditLogListResponse,
    AuditLogOut,
    DeletedUserResponse,
    PageInfo,
    RoleUpdate,
    TodoListResponse,
    TodoOut,
    UserListResponse,
    UserOut,
    UserResponse,
)
from api.pagination import Page, page_params
from audit.models import AuditAction
from audit.store import AuditStore
from auth.deletion import SoftDeleteCoordinator
from auth.dependencies import require_admin
from auth.models import Identity
from auth.store import UserStore
from core.errors import NotFoundError
from todos.store import TodoStore

router = APIRouter()

_USER_NOT_FOUND = "User not found."


@router.get("/admin/users", response_model=UserListResponse)
async def list_users(
    request: Request,
    admin: Identity = Depends(require_admin),
    page: Page = Depends(page_params),
) -> UserListResponse:
    user_store: UserStore = request.app.state.user_store
    users, total = await user_store.list_live(page.limit, page.offset)
    await record_event(
        request,
        AuditAction.admin_list_users,
        actor=admin,
        metadata={"limit": page.limit, "offset": page.offset},
    )
    return UserListResponse(
        users=[AdminUserOut.from_user(u) for u in users],
        page=PageInfo(limit=page.limit, offset=page.offset, total=total),
    )


@router.patch("/admin/users/{user_id}/role", response_model=UserResponse)
async def set_user_role(
    request: Request,
    user_id: str,
    body: RoleUpdate,
    admin: Identity = Depends(require_admin),
) -> UserResponse:
    """Change a live user's role. Takes effect at that user's next login or refresh."""
    user_store: UserStore = request.app.state.user_store
    before = await user_store.find_by_id(user_id)
    if before is None or not await user_store.set_role(before.id, body.role):
        raise NotFoundError(_USER_NOT_FOUND)

    await record_event(
        request,
        AuditAction.admin_set_user_role,
        actor=admin,
        target_user_id=before.id,
        metadata={"from": before.role.value, "to": body.role.value},
    )
    return UserResponse(user=UserOut(id=before.id, email=before.email, role=body.role))


@router.get("/admin/users/{user_id}/todos", response_model=TodoListResponse)
async def view_user_todos(
    request: Request,
    user_id: str,
    completed: Optional[str] = Query(None, pattern="^(true|false)$"),
    admin: Identity = Depends(require_admin),
    page: Page = Depends(page_params),
) -> TodoListResponse:
    user_store: UserStore = request.app.state.user_store
    todo_store: TodoStore = request.app.state.todo_store

    owner = await user_store.find_by_id(user_id)
    if owner is None:
        raise NotFoundError(_USER_NOT_FOUND)

    flag = None if completed is None else completed == "true"
    items, total = await todo_store.list_by_owner(owner.id, completed=flag, limit=page.limit, offset=page.offset)
    await record_event(
        request,
        AuditAction.admin_view_user_todos,
        actor=admin,
        target_user_id=owner.id,
        metadata={"limit": page.limit, "offset": page.offset, "completed": flag},
    )
    return TodoListResponse(
        todos=[TodoOut.from_todo(t) for t in items],
        page=PageInfo(limit=page.limit, offset=page.offset, total=total),
    )


@router.delete("/admin/users/{user_id}", response_model=DeletedUserResponse)
async def delete_user(
    request: Request,
    user_id: str,
    admin: Identity = Depends(require_admin),
) -> DeletedUserResponse:
    """Soft-delete a user, soft-delete their todos, and revoke every session they hold.

    Access tokens the user already holds stay valid until they expire.
    """
    coordinator: SoftDeleteCoordinator = request.app.state.deletion
    summary = await coordinator.soft_delete_user(user_id)
    if summary is None:
        raise NotFoundError(_USER_NOT_FOUND)

    await record_event(
        request,
        AuditAction.admin_delete_user,
        actor=admin,
        target_user_id=summary.id,
        metadata={
            "email": summary.email,
            "todosDeleted": summary.resources_deleted,
            "sessionsRevoked": summary.sessions_revoked,
        },
    )
    return DeletedUserResponse(
        deleted=UserOut(id=summary.id, email=summary.email, role=summary.role),
        todos_deleted=summary.resources_deleted,
        sessions_revoked=summary.sessions_revoked,
    )


def _action_filter(raw: Optional[str]) -> Optional[AuditAction]:
    """A trimmed, known action name, or None. Unrecognized values do not filter."""
    if raw is None:
        return None
    try:
        return AuditAction(raw.strip())
    except ValueError:
        return None


@router.get("/admin/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    request: Request,
    action: Optional[str] = Query(None),
    actor_user_id: Optional[str] = Query(None, alias="actorUserId"),
    target_user_id: Optional[str] = Query(None, alias="targetUserId"),
    admin: Identity = Depends(require_admin),
    page: Page = Depends(page_params),
) -> AuditLogListResponse:
    """Query the audit trail. Blank filters are ignored, as is an unknown action."""
    audit_store: AuditStore = request.app.state.audit_store
    entries, total = await audit_store.query(
        action=_action_filter(action),
        actor_user_id=actor_user_id,
        target_user_id=target_user_id,
        limit=page.limit,
        offset=page.offset,
    )
    return AuditLogListResponse(
        logs=[AuditLogOut.from_entry(e) for e in entries],
        page=PageInfo(limit=page.limit, offset=page.offset, total=total),
    )

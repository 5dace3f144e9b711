"""
audit/models.py -- Domain dataclasses for the audit trail.

AuditLogEntry is a fact about the past. actor_email and actor_role are
copies taken when the entry is written, not links: they keep saying what
was true at the time even after the account changes role or is deleted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from auth.models import Role


class AuditAction(str, Enum):
    register = "register"
    login_success = "login-success"
    login_failure = "login-failure"
    token_refresh = "token-refresh"
    logout = "logout"
    logout_all = "logout-all"
    admin_list_users = "admin-list-users"
    admin_view_user_todos = "admin-view-user-todos"
    admin_set_user_role = "admin-set-user-role"
    admin_delete_user = "admin-delete-user"


@dataclass
class AuditLogEntry:
    """One immutable audit record.

    actor_user_id is None for failed logins against an unknown email.
    metadata is opaque -- stored and returned exactly as given.

    id is None before the record is written to the database.
    """

    action: AuditAction
    actor_user_id: Optional[str] = None
    actor_email: Optional[str] = None
    actor_role: Role = Role.user
    target_user_id: Optional[str] = None
    target_resource_id: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Any = field(default_factory=dict)
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert

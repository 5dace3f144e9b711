"""
API request and response models for the todoguard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py,
audit/models.py and todos/models.py, which own the internal domain
representation. Route handlers map between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API
contract. Nothing here carries a password hash or an owner id out of the
process.

JSON keys are camelCase on the wire. Every model accepts snake_case field
names too (populate_by_name) so route code can construct them naturally.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic.alias_generators import to_camel

from audit.models import AuditAction, AuditLogEntry
from auth.models import Identity, Role, User
from todos.models import Todo

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(CamelModel):
    """Request body for POST /auth/register and POST /auth/login.

    Only the types are checked here. Email shape and password length are
    UserStore.register()'s job so every entry point applies the same rules.
    """

    email: StrictStr
    password: StrictStr


class RefreshRequest(CamelModel):
    """Request body for POST /auth/refresh and POST /auth/logout.

    A missing or empty token is not a validation error: refresh answers 401
    and logout answers ok.
    """

    refresh_token: Optional[StrictStr] = ""


class TodoCreate(CamelModel):
    title: StrictStr


class TodoPatch(CamelModel):
    """At least one of title and completed must be present (checked by TodoStore)."""

    title: Optional[StrictStr] = None
    completed: Optional[StrictBool] = None


class RoleUpdate(CamelModel):
    role: Role


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """The single error envelope used by every failure response."""

    error: ErrorDetail


class PageInfo(CamelModel):
    limit: int
    offset: int
    total: int


class PublicUser(CamelModel):
    id: str
    email: str


class UserOut(CamelModel):
    id: str
    email: str
    role: Role

    @classmethod
    def from_user(cls, user: User | Identity) -> "UserOut":
        return cls(id=user.id, email=user.email, role=user.role)


class AdminUserOut(UserOut):
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "AdminUserOut":
        return cls(id=user.id, email=user.email, role=user.role, created_at=user.created_at)


class RegisterResponse(CamelModel):
    user: PublicUser


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str


class LoginResponse(TokenPairResponse):
    user: UserOut


class MeResponse(CamelModel):
    user: UserOut


class StatusResponse(CamelModel):
    status: str = "ok"


class LogoutAllResponse(StatusResponse):
    revoked: int


class TodoOut(CamelModel):
    """A todo as its owner (or an admin) sees it. The owner id is never exposed."""

    id: str
    title: str
    completed: bool
    created_at: str

    @classmethod
    def from_todo(cls, todo: Todo) -> "TodoOut":
        return cls(id=todo.id, title=todo.title, completed=todo.completed, created_at=todo.created_at)


class TodoResponse(CamelModel):
    todo: TodoOut


class TodoDeletedResponse(CamelModel):
    deleted: TodoOut


class TodoListResponse(CamelModel):
    todos: list[TodoOut]
    page: PageInfo


class UserListResponse(CamelModel):
    users: list[AdminUserOut]
    page: PageInfo


class UserResponse(CamelModel):
    user: UserOut


class DeletedUserResponse(CamelModel):
    deleted: UserOut
    todos_deleted: int
    sessions_revoked: int


class AuditLogOut(CamelModel):
    id: int
    created_at: str
    actor_user_id: Optional[str]
    actor_email: Optional[str]
    actor_role: Role
    action: AuditAction
    target_user_id: Optional[str]
    target_resource_id: Optional[str]
    ip: Optional[str]
    user_agent: Optional[str]
    metadata: Any = None

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> "AuditLogOut":
        return cls(
            id=entry.id,
            created_at=entry.created_at,
            actor_user_id=entry.actor_user_id,
            actor_email=entry.actor_email,
            actor_role=entry.actor_role,
            action=entry.action,
            target_user_id=entry.target_user_id,
            target_resource_id=entry.target_resource_id,
            ip=entry.ip,
            user_agent=entry.user_agent,
            metadata=entry.metadata,
        )


class AuditLogListResponse(CamelModel):
    logs: list[AuditLogOut]
    page: PageInfo


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)

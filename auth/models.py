"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these own the domain shape.

Layer rule: no imports from api/, audit/, or todos/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. Every authorization decision compares members of
    this enum, never free-form strings."""

    user = "user"
    admin = "admin"


@dataclass
class User:
    """An identity record owned by the credential store.

    email is stored normalized (trimmed, lower-cased) and is unique among
    live users only. deleted_at is None for live users; once set it is
    never cleared.

    password_hash never leaves the auth package -- response models in api/
    copy the public fields explicitly.
    """

    id: str
    email: str
    password_hash: str
    role: Role = Role.user
    created_at: str = ""  # ISO 8601, set by store on insert
    deleted_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """Who the caller is, as of the moment their access token was minted.

    Attached to request.state by the authorization guard. The role is a
    snapshot: a role change takes effect on the holder's next login or
    refresh, not on tokens already issued.
    """

    id: str
    email: str
    role: Role


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

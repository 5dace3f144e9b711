"""
auth/dependencies.py -- FastAPI Depends() helpers: the authorization guard.

Two ordered stages, applied to every protected route:

  1. get_current_identity() -- authenticate. Requires an
     "Authorization: Bearer <access-token>" header and a token that passes
     verify_access(). Any failure raises AuthenticationError (401) before
     authorization logic can run. On success the Identity is attached to
     request.state.identity and returned.

  2. require_role(role) -- authorize. Builds a dependency that itself
     Depends() on get_current_identity, so FastAPI always resolves stage 1
     first; there is no way to reach the role check without an identity.
     A mismatch raises AuthorizationError (403).

The role checked is the snapshot embedded in the access token. It is not
re-read from the credential store per request, so a promotion or demotion
takes effect when the holder next logs in or refreshes.

Layer rule: no imports from api/, audit/, or todos/.
  auth/dependencies.py may import from fastapi because this module is part of
  the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.models import Identity, Role
from auth.tokens import verify_access
from core.errors import AuthenticationError, AuthorizationError

_BEARER_PREFIX = "bearer "


def get_current_identity(request: Request) -> Identity:
    """Require a valid bearer access token. Raises AuthenticationError otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(identity: Identity = Depends(get_current_identity)): ...
    """
    header = request.headers.get("Authorization", "")
    if header[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        raise AuthenticationError()
    token = header[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise AuthenticationError()

    identity = verify_access(token)
    if identity is None:
        raise AuthenticationError()

    request.state.identity = identity
    return identity


def require_role(required: Role) -> Callable[..., Identity]:
    """Build a dependency that authenticates, then demands the given role."""
    required = Role(required)

    def _dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if required is Role.admin:
            allowed = identity.role is Role.admin
        elif required is Role.user:
            # Every authenticated role may do what a plain user may do.
            allowed = identity.role in (Role.user, Role.admin)
        else:
            allowed = False
        if not allowed:
            raise AuthorizationError(f"{required.value.capitalize()} access required.")
        return identity

    return _dependency


require_admin = require_role(Role.admin)

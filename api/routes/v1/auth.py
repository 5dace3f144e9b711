"""
api/routes/v1/auth.py -- Registration, login and session REST endpoints.

Routes:
  POST /auth/register    -- create a live user; 201
  POST /auth/login       -- password login; returns an access/refresh pair
  POST /auth/refresh     -- rotate a refresh token into a fresh pair
  POST /auth/logout      -- revoke one refresh token; always ok
  POST /auth/logout-all  -- revoke every session of the caller (requires auth)
  GET  /me               -- current identity (requires auth)

Security:
  [H2] POST /auth/login and POST /auth/register are rate-limited per IP.
  [C1] authenticate_user() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on every response that carries tokens.
  Login and refresh failures each return one generic message. Why a login
  failed is recorded in the audit log's metadata and nowhere else.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from api.audit import record_event
from api.limiter import limiter
from api.models import (
    CredentialsRequest,
    LoginResponse,
    LogoutAllResponse,
    MeResponse,
    PublicUser,
    RefreshRequest,
    RegisterResponse,
    StatusResponse,
    TokenPairResponse,
    UserOut,
)
from audit.models import AuditAction
from auth.dependencies import require_role
from auth.models import Identity, Role
from auth.sessions import REFRESH_FAILED_MESSAGE, SessionStore
from auth.store import UserStore, normalize_email
from auth.tokens import authenticate_user, verify_refresh
from core.config import get_settings
from core.errors import AuthenticationError

logger = logging.getLogger("todoguard.api.auth")

_settings = get_settings()

LOGIN_FAILED_MESSAGE = "Invalid email or password."

# Auth policy:
# - POST /auth/register:    public, rate limited
# - POST /auth/login:       public, rate limited
# - POST /auth/refresh:     public -- the refresh token in the body is the credential
# - POST /auth/logout:      public -- the refresh token in the body is the credential
# - POST /auth/logout-all:  requires auth (require_role(Role.user))
# - GET  /me:               requires auth (require_role(Role.user))
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(_settings.register_rate_limit)
async def register(request: Request, body: CredentialsRequest) -> RegisterResponse:
    """Create an account with role user. Emails are matched case-insensitively."""
    user_store: UserStore = request.app.state.user_store
    user = await user_store.register(body.email, body.password)
    await record_event(request, AuditAction.register, actor=user, target_user_id=user.id)
    return RegisterResponse(user=PublicUser(id=user.id, email=user.email))


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(_settings.login_rate_limit)  # [H2] brute-force mitigation
async def login(request: Request, response: Response, body: CredentialsRequest) -> LoginResponse:
    """Authenticate with email and password; issue an access/refresh pair.

    Uses authenticate_user() which includes timing equalization [C1]. Do NOT
    inline find_by_email() + verify_password() -- that re-introduces the
    timing attack.
    """
    user_store: UserStore = request.app.state.user_store
    sessions: SessionStore = request.app.state.session_store

    user, reason = await authenticate_user(user_store, body.email, body.password)
    if reason is not None:
        await record_event(
            request,
            AuditAction.login_failure,
            actor=user,
            actor_email=normalize_email(body.email),
            target_user_id=user.id if user is not None else None,
            metadata={"reason": reason},
        )
        logger.info("Login failed (%s)", reason)
        raise AuthenticationError(LOGIN_FAILED_MESSAGE)

    pair = await sessions.issue(user)
    await record_event(request, AuditAction.login_success, actor=user, target_user_id=user.id)
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return LoginResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        user=UserOut.from_user(user),
    )


@router.post("/auth/refresh", response_model=TokenPairResponse)
async def refresh(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
) -> TokenPairResponse:
    """Exchange a live refresh token for a new pair. The presented token is consumed."""
    token = body.refresh_token if body is not None else None
    if not token:
        raise AuthenticationError(REFRESH_FAILED_MESSAGE)

    user_store: UserStore = request.app.state.user_store
    sessions: SessionStore = request.app.state.session_store
    user, pair = await sessions.rotate(token, user_store)

    await record_event(request, AuditAction.token_refresh, actor=user, target_user_id=user.id)
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/auth/logout", response_model=StatusResponse)
async def logout(request: Request, body: Optional[RefreshRequest] = None) -> StatusResponse:
    """Revoke one refresh token. Answers ok whether or not the token was live."""
    token = body.refresh_token if body is not None else None
    if not token:
        return StatusResponse()

    sessions: SessionStore = request.app.state.session_store
    if await sessions.revoke(token):
        owner_id = verify_refresh(token)
        owner = await request.app.state.user_store.find_by_id(owner_id) if owner_id else None
        if owner is not None:
            await record_event(request, AuditAction.logout, actor=owner, target_user_id=owner.id)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    request: Request,
    identity: Identity = Depends(require_role(Role.user)),
) -> LogoutAllResponse:
    """Revoke every refresh token the caller owns. Outstanding access tokens
    stay valid until they expire."""
    sessions: SessionStore = request.app.state.session_store
    revoked = await sessions.revoke_all(identity.id)
    await record_event(
        request,
        AuditAction.logout_all,
        actor=identity,
        target_user_id=identity.id,
        metadata={"revoked": revoked},
    )
    return LogoutAllResponse(revoked=revoked)


@router.get("/me", response_model=MeResponse)
async def me(identity: Identity = Depends(require_role(Role.user))) -> MeResponse:
    """Return the identity carried by the caller's access token."""
    return MeResponse(user=UserOut.from_user(identity))

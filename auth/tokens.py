"""
auth/tokens.py -- Token issuer and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Two token kinds share SECRET_KEY and are told
       apart by a "type" claim:
         access  -- {sub, email, role, type="access", exp}; short-lived.
         refresh -- {sub, type="refresh", jti, exp}; long-lived. The jti is a
                    fresh UUID per issuance so two refresh tokens minted for
                    the same user in the same second never collide (the token
                    value is the session registry's primary key).
       Verification returns None on any failure -- signature, expiry, missing
       claims, wrong type, unknown role. It never raises; the caller decides
       the status.

  Passwords: bcrypt directly (no passlib wrapper). The cost factor comes from
       Settings.bcrypt_rounds. _DUMMY_HASH enables timing equalization in
       authenticate_user() so response time does not reveal whether an email
       is registered [C1]. Hashing is CPU-bound, so async callers push it to
       the threadpool instead of blocking the event loop.

Layer rule: no imports from api/, audit/, or todos/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt
from starlette.concurrency import run_in_threadpool

from auth.models import Identity, Role
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("todoguard.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton [M6]
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"
_ACCESS_TYPE = "access"
_REFRESH_TYPE = "refresh"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. register() caps passwords at
    128 characters, and the truncation is applied explicitly so bcrypt 4.x
    does not reject long UTF-8 input.
    """
    pw_bytes = plain.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=_settings.bcrypt_rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Timing equalization dummy hash [C1]. Computed once at module load so the
# first login attempt is not measurably slower than subsequent ones.
_DUMMY_HASH: str = hash_password("todoguard_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def sign_access(user: User) -> str:
    """Mint a short-lived access token carrying a snapshot of id, email and role."""
    expire = datetime.now(timezone.utc) + timedelta(seconds=_settings.access_token_expire_seconds)
    payload = {
        "sub": user.id,
        "email": user.email,
        "role": Role(user.role).value,
        "type": _ACCESS_TYPE,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def sign_refresh(user_id: str) -> str:
    """Mint a long-lived refresh token. Unique per call via the jti claim."""
    expire = datetime.now(timezone.utc) + timedelta(seconds=_settings.refresh_token_expire_seconds)
    payload = {
        "sub": user_id,
        "type": _REFRESH_TYPE,
        "jti": uuid.uuid4().hex,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def _decode(token: str) -> dict | None:
    try:
        return jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None


def verify_access(token: str) -> Identity | None:
    """Decode and verify an access token. Returns the Identity or None on any failure."""
    payload = _decode(token)
    if payload is None or payload.get("type") != _ACCESS_TYPE:
        return None
    sub = payload.get("sub")
    email = payload.get("email")
    if not isinstance(sub, str) or not sub or not isinstance(email, str):
        return None
    try:
        role = Role(payload.get("role"))
    except ValueError:
        return None
    return Identity(id=sub, email=email, role=role)


def verify_refresh(token: str) -> str | None:
    """Decode and verify a refresh token. Returns the owning user id or None.

    Signature validity alone does not make a refresh token live -- the
    session registry's allow-list is the authority on that.
    """
    payload = _decode(token)
    if payload is None or payload.get("type") != _REFRESH_TYPE:
        return None
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub or not isinstance(payload.get("jti"), str):
        return None
    return sub


# ---------------------------------------------------------------------------
# User authentication (constant-time) [C1]
# ---------------------------------------------------------------------------


async def authenticate_user(store: UserStore, email: str, password: str) -> tuple[User | None, str | None]:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown (or soft-deleted) email: bcrypt runs against _DUMMY_HASH
    - Wrong password: bcrypt runs against the real hash

    Returns (user, reason). Success is reason None. On failure reason is
    "email_not_found" (user is None) or "bad_password" (user is the matched
    record, so the audit entry can name the targeted account). The reason is
    for the audit log only and must never reach a response body.
    """
    user = await store.find_by_email(email)
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt [C1]
        await run_in_threadpool(verify_password, password, _DUMMY_HASH)
        return None, "email_not_found"
    if not await run_in_threadpool(verify_password, password, user.password_hash):
        return user, "bad_password"
    return user, None

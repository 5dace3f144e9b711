"""
tests/test_tokens.py -- Unit tests for auth/tokens.py.

Covers signing and verification of both token kinds, rejection of tampered,
expired, wrong-kind and unknown-role tokens, and bcrypt hashing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt

from auth.models import Role, User
from auth.tokens import hash_password, sign_access, sign_refresh, verify_access, verify_password, verify_refresh
from core.config import get_settings

_USER = User(id="u-1", email="alice@example.com", password_hash="", role=Role.admin)


def _forge(payload: dict, key: str | None = None) -> str:
    return jwt.encode(payload, key or get_settings().secret_key, algorithm="HS256")


class TestAccessTokens:
    def test_round_trip_carries_role_snapshot(self) -> None:
        identity = verify_access(sign_access(_USER))
        assert identity is not None
        assert (identity.id, identity.email, identity.role) == ("u-1", "alice@example.com", Role.admin)

    def test_wrong_key_rejected(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = _forge({"sub": "u-1", "email": "a@b.co", "role": "user", "type": "access", "exp": exp}, "x" * 32)
        assert verify_access(token) is None

    def test_expired_rejected(self) -> None:
        exp = datetime.now(timezone.utc) - timedelta(seconds=1)
        token = _forge({"sub": "u-1", "email": "a@b.co", "role": "user", "type": "access", "exp": exp})
        assert verify_access(token) is None

    def test_unknown_role_rejected(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = _forge({"sub": "u-1", "email": "a@b.co", "role": "root", "type": "access", "exp": exp})
        assert verify_access(token) is None

    def test_refresh_token_is_not_an_access_token(self) -> None:
        assert verify_access(sign_refresh("u-1")) is None

    def test_garbage_rejected(self) -> None:
        assert verify_access("") is None
        assert verify_access("not.a.jwt") is None


class TestRefreshTokens:
    def test_round_trip(self) -> None:
        assert verify_refresh(sign_refresh("u-1")) == "u-1"

    def test_each_issuance_is_unique(self) -> None:
        assert sign_refresh("u-1") != sign_refresh("u-1")

    def test_access_token_is_not_a_refresh_token(self) -> None:
        assert verify_refresh(sign_access(_USER)) is None

    def test_missing_jti_rejected(self) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        assert verify_refresh(_forge({"sub": "u-1", "type": "refresh", "exp": exp})) is None


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("s3cret-password")
        assert hashed != "s3cret-password"
        assert verify_password("s3cret-password", hashed)
        assert not verify_password("wrong-password", hashed)

    def test_malformed_hash_is_false(self) -> None:
        assert not verify_password("anything", "not-a-bcrypt-hash")

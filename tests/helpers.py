"""
tests/helpers.py -- HTTP helpers shared by the integration test modules.
"""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role

PASSWORD = "correct-horse-battery"


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}@example.com"


def auth_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def register(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    resp = client.post("/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, f"Register failed: {resp.status_code} {resp.text}"
    return resp.json()["user"]


def login(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"Login failed: {resp.status_code} {resp.text}"
    return resp.json()


def make_user(client: TestClient, prefix: str = "user") -> dict:
    """Register and log in a fresh user. Returns the login body plus the email."""
    email = unique_email(prefix)
    register(client, email)
    body = login(client, email)
    body["email"] = email
    return body


def make_admin(client: TestClient) -> dict:
    """Register a user, promote it directly in storage, and log in.

    Promotion over HTTP needs an admin already, so the first one is seeded
    the way `main.py create-user --role admin` does it.
    """
    email = unique_email("admin")
    user = register(client, email)
    client.portal.call(app.state.user_store.set_role, user["id"], Role.admin)
    body = login(client, email)
    body["email"] = email
    return body

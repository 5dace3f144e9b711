"""
tests/conftest.py -- Shared test fixtures for todoguard tests.

This module provides:
  - _patch_lifespan(): builds a Storage on a temporary SQLite file and wires
    every store into app.state, bypassing the real startup
  - api_client: module-scoped TestClient over the full ASGI stack
  - storage: function-scoped Storage for direct async store tests

Design: a temporary SQLite *file* (not :memory:) is used because the async
engine pools several connections and each :memory: connection would see a
blank schema. The Storage is created inside the lifespan so its engine is
bound to the event loop TestClient runs the app on.

Environment must be set before any todoguard import:
  DEBUG=true      -- get_settings() auto-generates SECRET_KEY instead of raising
  BCRYPT_ROUNDS=4 -- keeps password hashing from dominating test runtime
  ALLOWED_HOSTS   -- TestClient sends Host: testserver
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any api/auth/core import so get_settings() sees it.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, build_state
from core.storage import Storage

# Rate limits are exercised explicitly where needed; everywhere else they
# would turn a long test module into a wall of 429s.
limiter.enabled = False


def _patch_lifespan(db_url: str):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app) -> AsyncIterator[None]:
        storage = Storage(db_url)
        await storage.create_all()
        build_state(app, storage)
        yield
        await storage.close()

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(tmp_path_factory) -> Generator[TestClient, None, None]:
    """Yield a TestClient on the real app with an isolated database per module."""
    db_path = tmp_path_factory.mktemp("api") / "todoguard.db"
    app.router.lifespan_context = _patch_lifespan(f"sqlite+aiosqlite:///{db_path}")

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest_asyncio.fixture
async def storage(tmp_path) -> AsyncIterator[Storage]:
    """A fresh schema on a temporary SQLite file for direct store tests."""
    s = Storage(f"sqlite+aiosqlite:///{tmp_path / 'unit.db'}")
    await s.create_all()
    yield s
    await s.close()

"""
core/storage.py -- The one shared storage handle for todoguard.

Storage wraps a single SQLAlchemy AsyncEngine. It is constructed once in the
API lifespan (or once per test) and passed explicitly to every store; there
is no module-level engine. close() disposes the pool at shutdown.

Transactions:
  transaction() yields one AsyncConnection inside BEGIN ... COMMIT, rolling
  back if the block raises. Store methods take an optional conn argument;
  connect(conn) reuses the caller's connection when one is supplied and opens
  a short transaction of its own otherwise. That is how multi-step operations
  (refresh rotation, soft-delete cascade) run as one unit while single-step
  calls stay one-liners at the call site.

SQLite:
  WAL journal mode lets readers proceed while a writer holds the lock, and
  foreign_keys=ON makes the declared REFERENCES clauses real. Both are
  per-connection PRAGMAs, so they are set on every new pool connection.

Layer rule: core/ is the kernel. No imports from api/, auth/, audit/, todos/.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import MetaData, event, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

logger = logging.getLogger("todoguard.storage")

# Every table in the application registers itself here so create_all() sees
# the full schema regardless of which store module was imported first.
metadata = MetaData()


def now_iso() -> str:
    """Current UTC time as the ISO 8601 text every timestamp column stores."""
    return datetime.now(timezone.utc).isoformat()


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign key enforcement on each new SQLite connection.

    The aiosqlite adapter exposes a DB-API shaped connection; PRAGMAs go
    through a cursor rather than Connection.execute().
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Storage:
    """Process-wide storage context.

    Usage:
        storage = Storage("sqlite+aiosqlite:///todoguard.db")
        await storage.create_all()
        async with storage.transaction() as conn:
            ...
        await storage.close()
    """

    def __init__(self, db_url: str) -> None:
        self.url = db_url
        self.engine: AsyncEngine = create_async_engine(db_url)
        if db_url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _set_sqlite_pragmas)

    async def create_all(self) -> None:
        """Create any missing tables and indexes. Idempotent."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Yield a connection inside a transaction; commit on exit, roll back on error."""
        async with self.engine.begin() as conn:
            yield conn

    @asynccontextmanager
    async def connect(self, conn: AsyncConnection | None = None) -> AsyncIterator[AsyncConnection]:
        """Reuse the caller's transaction if given, otherwise open a fresh one."""
        if conn is not None:
            yield conn
            return
        async with self.engine.begin() as own:
            yield own

    async def ping(self) -> bool:
        """Run a trivial query to verify the database is reachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Storage ping failed")
            return False

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Storage closed")

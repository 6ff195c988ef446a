"""SQLite key/value store adapter.

Implements KeyValueStorePort using SQLite with aiosqlite for async access.
Each key holds one text value that is replaced atomically on write, which
gives the record store a durable, text-only medium with zero operational
overhead.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from fieldsign.core.errors import PersistenceError
from fieldsign.core.ports import KeyValueStorePort

logger = logging.getLogger(__name__)


class SQLiteKeyValueStore(KeyValueStorePort):
    """SQLite-backed key/value store with connection pooling and async access."""

    def __init__(self, db_path: str, pool_size: int = 5):
        """Initialize SQLite store with connection pooling.

        Args:
            db_path: Path to SQLite database file.
            pool_size: Number of connections to maintain in the pool.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._pool: list[aiosqlite.Connection] = []
        self._pool_lock = asyncio.Lock()
        self._pool_size = pool_size
        self._schema_initialized = False

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get a connection from the pool or create a new one."""
        async with self._pool_lock:
            if self._pool:
                return self._pool.pop()
        try:
            return await aiosqlite.connect(str(self.db_path))
        except (aiosqlite.Error, OSError) as e:
            raise PersistenceError(f"Cannot open {self.db_path}: {e}") from e

    async def _return_connection(self, conn: aiosqlite.Connection) -> None:
        """Return a connection to the pool."""
        async with self._pool_lock:
            if len(self._pool) < self._pool_size:
                self._pool.append(conn)
                return
        await conn.close()

    async def close_pool(self) -> None:
        """Close all pooled connections."""
        async with self._pool_lock:
            for conn in self._pool:
                await conn.close()
            self._pool.clear()

    async def close(self) -> None:
        await self.close_pool()

    async def _init_schema(self) -> None:
        """Initialize database schema on first use.

        Only runs once per instance. Subsequent calls are no-ops.
        """
        if self._schema_initialized:
            return

        conn = await self._get_connection()
        try:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            await conn.commit()
            self._schema_initialized = True
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to initialize schema: {e}") from e
        finally:
            await self._return_connection(conn)

    async def get(self, key: str) -> str | None:
        """Read the value stored under a key."""
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
            return None if row is None else row[0]
        except aiosqlite.Error as e:
            logger.error(f"Failed to read key {key}: {e}")
            raise PersistenceError(f"Failed to read key {key}: {e}") from e
        finally:
            await self._return_connection(conn)

    async def set(self, key: str, value: str) -> None:
        """Replace the value stored under a key in a single transaction."""
        await self._init_schema()

        conn = await self._get_connection()
        try:
            await conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, datetime.now(timezone.utc).isoformat()),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error(f"Failed to write key {key}: {e}")
            await conn.rollback()
            raise PersistenceError(f"Failed to write key {key}: {e}") from e
        finally:
            await self._return_connection(conn)

    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys, optionally restricted to a prefix."""
        await self._init_schema()

        conn = await self._get_connection()
        try:
            cursor = await conn.execute(
                "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            )
            return [row[0] for row in await cursor.fetchall()]
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to list keys: {e}") from e
        finally:
            await self._return_connection(conn)

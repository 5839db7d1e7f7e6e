"""SQLite cache of serialized registry indexes with stale-while-revalidate.

All cache operations catch ``aiosqlite.Error`` internally and degrade
gracefully: read failures return ``None`` (treated as a cache miss by callers),
write failures are logged and ignored (the in-memory index is still usable).
Infrastructure errors never cross the IndexCache class boundary.
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from regindex.config import CacheSettings
    from regindex.models.cache import IndexCacheEntry

log = structlog.get_logger()

_CREATE_INDEX_TABLE = """
CREATE TABLE IF NOT EXISTS index_cache (
    location    TEXT PRIMARY KEY,
    payload     TEXT NOT NULL,
    fetched_at  TEXT NOT NULL,
    expires_at  TEXT NOT NULL
)
"""

_CREATE_EXPIRES_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_index_expires ON index_cache(expires_at)"
)


class IndexCache:
    """SQLite-backed store for ``Index.serialize()`` payloads, keyed by registry location."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_INDEX_TABLE)
        await self._db.execute(_CREATE_EXPIRES_INDEX)
        await self._db.commit()

    async def get_index(self, location: str) -> IndexCacheEntry | None:
        """Read a cached index. Returns ``None`` on cache miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT location, payload, fetched_at, expires_at "
                "FROM index_cache WHERE location = ?",
                (location,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            from regindex.models.cache import IndexCacheEntry

            expires_at = datetime.fromisoformat(row[3])
            return IndexCacheEntry(
                location=row[0],
                payload=json.loads(row[1]),
                fetched_at=datetime.fromisoformat(row[2]),
                expires_at=expires_at,
                stale=datetime.now(UTC) > expires_at,
            )
        except aiosqlite.Error:
            log.warning("cache_read_error", key=f"index:{location}", exc_info=True)
            return None

    async def set_index(self, location: str, payload: dict[str, Any], ttl_hours: int) -> None:
        """Write a serialized index. Non-fatal on failure."""
        try:
            now = datetime.now(UTC)
            expires_at = now + timedelta(hours=ttl_hours)
            await self._db.execute(
                "INSERT OR REPLACE INTO index_cache "
                "(location, payload, fetched_at, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (location, json.dumps(payload), now.isoformat(), expires_at.isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=f"index:{location}", exc_info=True)

    async def cleanup_expired(self) -> None:
        """Delete entries expired more than 7 days ago. Non-fatal on failure."""
        try:
            cutoff = (datetime.now(UTC) - timedelta(days=7)).isoformat()
            cursor = await self._db.execute(
                "DELETE FROM index_cache WHERE expires_at < ?", (cutoff,)
            )
            await self._db.commit()
            log.info("cache_cleanup_complete", index_deleted=cursor.rowcount)
        except aiosqlite.Error:
            log.warning("cache_cleanup_error", exc_info=True)


@asynccontextmanager
async def open_cache(settings: CacheSettings) -> AsyncIterator[IndexCache]:
    """Open the cache database at ``settings.db_path``, creating it if needed."""
    db_path = Path(settings.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        cache = IndexCache(db)
        await cache.init_db()
        log.debug("cache_opened", db_path=str(db_path))
        yield cache

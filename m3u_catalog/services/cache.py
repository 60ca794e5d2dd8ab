"""
Tiered cache for the categorized playlist tree.

The envelope (timestamp + tree) is stored as JSON text. Small envelopes go to
a JSON file store; envelopes over the capacity threshold, or ones the file
store fails to write, go to an SQLite key/value table instead.
"""
import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional, Protocol

import aiosqlite
from pydantic import ValidationError

from m3u_catalog.config import Settings, get_settings
from m3u_catalog.errors import CacheReadError, CacheWriteError
from m3u_catalog.models.catalog import CacheEnvelope, CategorizedTree

logger = logging.getLogger(__name__)

CACHE_KEY = "m3u_data"


class CacheBackend(Protocol):
    """Text key/value store used by the cache manager."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def put(self, key: str, value: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class FileCacheBackend:
    """One JSON file per key under a directory, with a size ceiling."""

    def __init__(self, directory: str | Path, max_bytes: int):
        self.directory = Path(directory)
        self.max_bytes = max_bytes

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str):
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except (OSError, UnicodeDecodeError) as e:
            raise CacheReadError(f"Failed to read {self._path(key)}: {e}") from e

    async def put(self, key: str, value: str) -> None:
        size = len(value.encode("utf-8"))
        if size >= self.max_bytes:
            raise CacheWriteError(f"{size} bytes exceeds file cache limit of {self.max_bytes}")
        try:
            await asyncio.to_thread(self._write, key, value)
        except OSError as e:
            raise CacheWriteError(f"Failed to write {self._path(key)}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._path(key).unlink, True)
        except OSError as e:
            raise CacheWriteError(f"Failed to delete {self._path(key)}: {e}") from e


class SQLiteCacheBackend:
    """Async SQLite key/value store for large envelopes."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._initialized = False

    async def initialize(self):
        """Create the cache table if it doesn't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS cache (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await db.commit()
        self._initialized = True

    async def _ensure_initialized(self):
        if not self._initialized:
            await self.initialize()

    async def get(self, key: str) -> Optional[str]:
        try:
            await self._ensure_initialized()
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute("SELECT value FROM cache WHERE key = ?", (key,))
                row = await cursor.fetchone()
        except (aiosqlite.Error, OSError) as e:
            raise CacheReadError(f"Failed to read {key} from {self.db_path}: {e}") from e
        return row[0] if row else None

    async def put(self, key: str, value: str) -> None:
        try:
            await self._ensure_initialized()
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """INSERT OR REPLACE INTO cache (key, value, created_at)
                       VALUES (?, ?, CURRENT_TIMESTAMP)""",
                    (key, value)
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise CacheWriteError(f"Failed to write {key} to {self.db_path}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._ensure_initialized()
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("DELETE FROM cache WHERE key = ?", (key,))
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise CacheWriteError(f"Failed to delete {key} from {self.db_path}: {e}") from e


class TieredCacheBackend:
    """Primary store with a capacity- and failure-based fallback to a secondary store."""

    def __init__(self, primary: CacheBackend, secondary: CacheBackend, max_bytes: int):
        self.primary = primary
        self.secondary = secondary
        self.max_bytes = max_bytes

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.primary.get(key)
            if value is not None:
                return value
        except CacheReadError as e:
            logger.warning(f"Primary cache read failed, trying secondary: {e}")
        return await self.secondary.get(key)

    async def put(self, key: str, value: str) -> Optional[str]:
        """
        Store value, returning the tier that took it ("primary"/"secondary"),
        or None when both failed. Never raises.
        """
        size = len(value.encode("utf-8"))
        if size < self.max_bytes:
            try:
                await self.primary.put(key, value)
                return "primary"
            except CacheWriteError as e:
                logger.warning(f"Primary cache write failed, falling back to secondary: {e}")
        else:
            logger.warning(f"Cache envelope is {size} bytes (limit {self.max_bytes}), using secondary store")

        try:
            await self.secondary.put(key, value)
        except CacheWriteError as e:
            logger.error(f"Secondary cache write failed, cache not saved: {e}")
            return None

        # Drop the older primary copy so it can't shadow the secondary one
        try:
            await self.primary.delete(key)
        except CacheWriteError as e:
            logger.warning(f"Could not evict stale primary cache entry: {e}")
        return "secondary"

    async def delete(self, key: str) -> None:
        for backend in (self.primary, self.secondary):
            try:
                await backend.delete(key)
            except CacheWriteError as e:
                logger.warning(f"Cache delete failed: {e}")


class CacheManager:
    """Read-through / write-through cache for the categorized tree."""

    def __init__(
        self,
        backend: CacheBackend,
        ttl_seconds: int = 24 * 3600,
        clock: Callable[[], float] = time.time,
        key: str = CACHE_KEY,
    ):
        self.backend = backend
        self.ttl_ms = ttl_seconds * 1000
        self.clock = clock
        self.key = key

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CacheManager":
        settings = settings or get_settings()
        backend = TieredCacheBackend(
            FileCacheBackend(settings.cache_dir, settings.cache_max_bytes),
            SQLiteCacheBackend(settings.database_path),
            settings.cache_max_bytes,
        )
        return cls(backend, ttl_seconds=settings.cache_ttl_seconds)

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def _read_envelope(self) -> Optional[CacheEnvelope]:
        text = await self.backend.get(self.key)
        if text is None:
            return None
        try:
            return CacheEnvelope.model_validate_json(text)
        except ValidationError as e:
            raise CacheReadError(f"Corrupt cache envelope: {e.error_count()} errors") from e

    async def load(self) -> Optional[CategorizedTree]:
        """Return the cached tree, or None when missing, expired, empty or unreadable."""
        try:
            envelope = await self._read_envelope()
        except CacheReadError as e:
            logger.warning(f"Cache read failed, treating as miss: {e}")
            return None

        if envelope is None:
            logger.info("No cache found, playlist must be parsed")
            return None

        age_ms = self._now_ms() - envelope.timestamp
        if age_ms >= self.ttl_ms:
            logger.info(f"Cache expired ({age_ms / 3600000:.1f}h old)")
            return None
        if envelope.data.is_empty():
            logger.info("Cache has no categories, ignoring it")
            return None

        logger.info(
            f"Loaded from cache: {len(envelope.data.filmes)} movie, "
            f"{len(envelope.data.series)} series and {len(envelope.data.tv)} channel subcategories"
        )
        return envelope.data

    async def save(self, tree: CategorizedTree) -> Optional[str]:
        """Store the tree with the current timestamp. Best effort, never raises."""
        envelope = CacheEnvelope(timestamp=self._now_ms(), data=tree)
        tier = await self.backend.put(self.key, envelope.model_dump_json())
        if tier:
            logger.info(f"Cache saved to {tier} store")
        return tier

    async def clear(self):
        await self.backend.delete(self.key)

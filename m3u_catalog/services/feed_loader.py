"""
Playlist feed loader.
Tries local playlist files first, then a remote URL, stopping at the first success.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

import httpx

from m3u_catalog.config import Settings, get_settings
from m3u_catalog.errors import FeedUnavailable

logger = logging.getLogger(__name__)


class FeedSourceError(Exception):
    """A single feed source failed."""


class FeedSource(Protocol):
    name: str

    async def fetch(self) -> str:
        ...


@dataclass
class FeedResult:
    """Raw playlist text and where it came from."""
    content: str
    source: str


class LocalFileSource:
    """Playlist file on local disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.name = str(path)

    def _read(self) -> str:
        if not self.path.is_file():
            raise FeedSourceError("file not found")
        with open(self.path, 'r', encoding='utf-8', errors='ignore') as f:
            return f.read()

    async def fetch(self) -> str:
        content = await asyncio.to_thread(self._read)
        if not content.strip():
            raise FeedSourceError("file is empty")
        return content


class RemoteSource:
    """Playlist served over HTTP."""

    def __init__(
        self,
        url: str,
        headers: Optional[dict] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.name = url
        self.headers = headers or {}
        self.timeout = timeout
        self.transport = transport

    async def fetch(self) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(self.url, headers=self.headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FeedSourceError(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FeedSourceError(f"{type(e).__name__}: {e}") from e

        if not response.text.strip():
            raise FeedSourceError("empty response")
        return response.text


@dataclass
class FeedLoader:
    """Resolve playlist text from an ordered list of sources."""
    sources: list = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FeedLoader":
        settings = settings or get_settings()
        sources: list = [LocalFileSource(path) for path in settings.feed_paths]
        if settings.feed_url:
            sources.append(RemoteSource(
                settings.feed_url,
                headers={
                    "User-Agent": settings.feed_user_agent,
                    "Accept": "text/plain,*/*",
                    "Referer": settings.feed_referer,
                },
                timeout=settings.feed_timeout_seconds,
            ))
        return cls(sources)

    async def load(self) -> FeedResult:
        """
        Fetch from each source in order and return the first success.

        Raises:
            FeedUnavailable: every source failed (or none is configured)
        """
        failures = []
        for source in self.sources:
            try:
                content = await source.fetch()
            except FeedSourceError as e:
                logger.warning(f"Failed to load playlist from {source.name}: {e}")
                failures.append((source.name, str(e)))
                continue
            except OSError as e:
                logger.warning(f"Failed to read playlist from {source.name}: {e}")
                failures.append((source.name, str(e)))
                continue

            logger.info(f"Loaded playlist from {source.name} ({len(content)} characters)")
            return FeedResult(content=content, source=source.name)

        logger.error(f"No playlist source succeeded ({len(failures)} tried)")
        raise FeedUnavailable(failures)

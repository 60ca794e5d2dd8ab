"""
Catalog service.

Ties the pipeline together: cache read-through, feed loading, background
parsing, fire-and-forget cache writes, and the queries the presentation
layer calls.
"""
import asyncio
import logging
from typing import Any, Optional, Sequence

from m3u_catalog.config import Settings, get_settings
from m3u_catalog.errors import CatalogNotLoaded, LoadInProgress
from m3u_catalog.models.catalog import CategorizedTree, Domain, LoadSummary, Page
from m3u_catalog.services.background import BackgroundParser
from m3u_catalog.services.cache import CacheManager
from m3u_catalog.services.debounce import ClientDebounce
from m3u_catalog.services.feed_loader import FeedLoader
from m3u_catalog.services.query_engine import ALL_SUBCATEGORIES, QueryEngine, total_pages

logger = logging.getLogger(__name__)

# Debounce key for callers that are not HTTP clients
LOCAL_CLIENT = "local"


class CatalogService:
    """Owns the categorized tree and serves queries over it."""

    def __init__(
        self,
        loader: FeedLoader,
        cache: CacheManager,
        parser: BackgroundParser,
        page_size: int = 20,
        debounce: Optional[ClientDebounce] = None,
    ):
        self.loader = loader
        self.cache = cache
        self.parser = parser
        self.page_size = page_size
        self.debounce = debounce or ClientDebounce()
        self.tree: Optional[CategorizedTree] = None
        self.source: Optional[str] = None
        self._engine: Optional[QueryEngine] = None
        self._loading = False
        self._cache_writes: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CatalogService":
        settings = settings or get_settings()
        return cls(
            loader=FeedLoader.from_settings(settings),
            cache=CacheManager.from_settings(settings),
            parser=BackgroundParser(settings.parse_executor),
            page_size=settings.page_size,
            debounce=ClientDebounce(settings.navigation_debounce_ms, max_clients=settings.navigation_max_clients),
        )

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def engine(self) -> QueryEngine:
        if self._engine is None:
            raise CatalogNotLoaded()
        return self._engine

    async def load_feed(self, force: bool = False) -> LoadSummary:
        """
        Load the catalog from cache, or fetch and parse the playlist.

        Only one load may run at a time. A forced load drops the stored
        envelope first. The cache write after a fresh parse runs in the
        background and never delays the result.

        Raises:
            LoadInProgress: another load is still running
            FeedUnavailable: no playlist source could be read
            BackgroundParseError: the parse itself crashed
        """
        if self._loading:
            raise LoadInProgress()

        self._loading = True
        try:
            if force:
                await self.cache.clear()
            else:
                cached = await self.cache.load()
                if cached is not None:
                    self._set_tree(cached, "cache")
                    return self._summary(from_cache=True)

            feed = await self.loader.load()
            result = await self.parser.run(feed.content)
            self._set_tree(result.tree, feed.source)
            self._schedule_cache_write(result.tree)
            return self._summary(from_cache=False)
        finally:
            self._loading = False

    def _set_tree(self, tree: CategorizedTree, source: str):
        self.tree = tree
        self.source = source
        self._engine = QueryEngine(tree, self.page_size)
        counts = tree.counts()
        logger.info(
            f"Catalog ready from {source}: {counts['filmes']} movies, "
            f"{counts['series']} series, {counts['tv']} channels"
        )

    def _schedule_cache_write(self, tree: CategorizedTree):
        task = asyncio.create_task(self.cache.save(tree))
        self._cache_writes.add(task)
        task.add_done_callback(self._cache_write_done)

    def _cache_write_done(self, task: asyncio.Task):
        self._cache_writes.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Cache write failed, continuing without cache: {task.exception()}")

    async def wait_for_cache_writes(self):
        """Wait for pending background cache writes."""
        if self._cache_writes:
            await asyncio.gather(*list(self._cache_writes), return_exceptions=True)

    def _summary(self, from_cache: bool) -> LoadSummary:
        return LoadSummary(
            source=self.source or "",
            from_cache=from_cache,
            counts=self.tree.counts(),
            subcategories={domain.value: len(self.tree.domain_map(domain)) for domain in Domain},
        )

    # Presentation-facing queries

    def get_subcategories(self, domain: Domain) -> list[str]:
        return self.engine.list_subcategories(domain)

    def query_entries(self, domain: Domain, subcategory: str = ALL_SUBCATEGORIES, text: str = "") -> list[Any]:
        return self.engine.filter(domain, subcategory, text)

    def get_page(self, items: Sequence[Any], n: int) -> Page:
        """Page n of items, clamped to the valid range."""
        pages = total_pages(items, self.page_size)
        current = min(max(n, 1), max(pages, 1))
        return Page(
            items=self.engine.page(items, current),
            page=current,
            per_page=self.page_size,
            total=len(items),
            total_pages=pages,
            has_previous=current > 1,
            has_next=current < pages,
        )

    def debounce_navigate(self, url: str, client_id: str = LOCAL_CLIENT) -> Optional[str]:
        return self.debounce.navigate(client_id, url)

    def stats(self) -> dict:
        if self.tree is None:
            return {"loaded": False, "loading": self._loading}
        return {
            "loaded": True,
            "loading": self._loading,
            "source": self.source,
            **self.tree.counts(),
        }

    async def shutdown(self):
        await self.wait_for_cache_writes()
        self.parser.shutdown()


# Singleton
_catalog_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create catalog service singleton."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService.from_settings()
    return _catalog_service

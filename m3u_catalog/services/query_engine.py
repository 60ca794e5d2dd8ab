"""
Read-only queries over the categorized tree: subcategories, text filter,
series merging and pagination.
"""
import logging
import math
from typing import Any, Optional, Sequence

from m3u_catalog.models.catalog import CategorizedTree, Domain, MediaEntry, SeriesEntry

logger = logging.getLogger(__name__)

ALL_SUBCATEGORIES = "all"
PAGE_SIZE = 20


def merge_series(target: dict[str, SeriesEntry], source: dict[str, SeriesEntry]) -> dict[str, SeriesEntry]:
    """
    Merge source series into target by series key, season by season.

    Episodes already present (same URL) are not duplicated, so merging the
    same maps again changes nothing. The first-seen display name wins.
    Target is modified in place; source entries are copied, never shared.
    """
    for key, series in source.items():
        existing = target.get(key)
        if existing is None:
            target[key] = series.model_copy(deep=True)
            continue

        if existing.display_name != series.display_name:
            logger.info(
                f"Series key {key!r} has two names ({existing.display_name!r}, "
                f"{series.display_name!r}); keeping the first"
            )
        if not existing.logo and series.logo:
            existing.logo = series.logo

        for season, episodes in series.seasons.items():
            merged = existing.seasons.setdefault(season, [])
            seen = {episode.url for episode in merged}
            for episode in episodes:
                if episode.url not in seen:
                    merged.append(episode.model_copy())
                    seen.add(episode.url)
    return target


def sorted_seasons(series: SeriesEntry) -> list[str]:
    """Season keys in numeric order, non-numeric keys last."""
    def sort_key(season: str):
        return (0, int(season), "") if season.isdigit() else (1, 0, season)
    return sorted(series.seasons, key=sort_key)


def total_pages(items: Sequence[Any], page_size: int = PAGE_SIZE) -> int:
    return math.ceil(len(items) / page_size)


def page(items: Sequence[Any], n: int, page_size: int = PAGE_SIZE) -> list[Any]:
    """Items on 1-based page n. Out-of-range pages are empty."""
    if n < 1:
        return []
    start = (n - 1) * page_size
    return list(items[start:start + page_size])


class PageCursor:
    """Previous/next navigation over a list. Moving past either end is a no-op."""

    def __init__(self, items: Sequence[Any], page_size: int = PAGE_SIZE):
        self.items = items
        self.page_size = page_size
        self.current = 1
        self.total_pages = total_pages(items, page_size)

    @property
    def has_previous(self) -> bool:
        return self.current > 1

    @property
    def has_next(self) -> bool:
        return self.current < self.total_pages

    def next(self) -> bool:
        if not self.has_next:
            return False
        self.current += 1
        return True

    def previous(self) -> bool:
        if not self.has_previous:
            return False
        self.current -= 1
        return True

    def go_to(self, n: int) -> bool:
        if n < 1 or n > self.total_pages or n == self.current:
            return False
        self.current = n
        return True

    def items_on_page(self) -> list[Any]:
        return page(self.items, self.current, self.page_size)


class QueryEngine:
    """Queries over a categorized tree. Never mutates the tree."""

    def __init__(self, tree: CategorizedTree, page_size: int = PAGE_SIZE):
        self.tree = tree
        self.page_size = page_size

    def list_subcategories(self, domain: Domain) -> list[str]:
        return sorted(self.tree.domain_map(domain))

    def filter(self, domain: Domain, subcategory: str = ALL_SUBCATEGORIES, text: str = "") -> list[Any]:
        """
        Entries of a domain, restricted to a subcategory and a text query.

        Movies and channels match on title, series on display name; the
        match is a case-insensitive substring and an empty query matches
        everything. "all" concatenates every subcategory (series are
        merged by key).
        """
        domain = Domain(domain)
        query = (text or "").strip().lower()

        if domain is Domain.SERIES:
            shows = self._series_for(subcategory)
            return [
                series for series in shows.values()
                if series.display_name and query in series.display_name.lower()
            ]

        entries = self._media_for(domain, subcategory)
        return [entry for entry in entries if entry.title and query in entry.title.lower()]

    def get_series(self, subcategory: str, series_key: str) -> Optional[SeriesEntry]:
        return self._series_for(subcategory).get(series_key.lower())

    def page(self, items: Sequence[Any], n: int) -> list[Any]:
        return page(items, n, self.page_size)

    def total_pages(self, items: Sequence[Any]) -> int:
        return total_pages(items, self.page_size)

    def _media_for(self, domain: Domain, subcategory: str) -> list[MediaEntry]:
        data = self.tree.domain_map(domain)
        if subcategory == ALL_SUBCATEGORIES:
            items = []
            for entries in data.values():
                items.extend(entries)
            return items
        return list(data.get(subcategory, []))

    def _series_for(self, subcategory: str) -> dict[str, SeriesEntry]:
        if subcategory == ALL_SUBCATEGORIES:
            merged: dict[str, SeriesEntry] = {}
            for shows in self.tree.series.values():
                merge_series(merged, shows)
            return merged
        return dict(self.tree.series.get(subcategory, {}))

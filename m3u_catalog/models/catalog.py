"""
Playlist catalog data models.
Parsed channel records, classified entries and the categorized tree.
"""
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Domain(str, Enum):
    """Top-level content domains."""
    FILMES = "filmes"
    SERIES = "series"
    TV = "tv"


class ChannelRecord(BaseModel):
    """One parsed playlist entry, before classification."""
    title: str
    url: str = ""
    group_raw: str = ""
    logo: str = ""


class MediaEntry(BaseModel):
    """Movie or linear channel entry."""
    title: str
    url: str
    logo: str = ""


class EpisodeEntry(BaseModel):
    """Single episode of a series season."""
    title: str
    url: str
    logo: str = ""


class SeriesEntry(BaseModel):
    """Series grouped by season number."""
    display_name: str
    logo: str = ""
    seasons: dict[str, list[EpisodeEntry]] = Field(default_factory=dict)

    @property
    def episode_count(self) -> int:
        return sum(len(episodes) for episodes in self.seasons.values())


class CategorizedTree(BaseModel):
    """Classified playlist: domain -> subcategory -> entries."""
    filmes: dict[str, list[MediaEntry]] = Field(default_factory=dict)
    series: dict[str, dict[str, SeriesEntry]] = Field(default_factory=dict)
    tv: dict[str, list[MediaEntry]] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        """True when none of the domains has a subcategory."""
        return not (self.filmes or self.series or self.tv)

    def domain_map(self, domain: Domain) -> dict[str, Any]:
        return getattr(self, Domain(domain).value)

    def counts(self) -> dict[str, int]:
        """Entry counts per domain (series counted per subcategory key)."""
        return {
            "filmes": sum(len(items) for items in self.filmes.values()),
            "series": sum(len(shows) for shows in self.series.values()),
            "episodes": sum(
                show.episode_count
                for shows in self.series.values()
                for show in shows.values()
            ),
            "tv": sum(len(items) for items in self.tv.values()),
        }


class CacheEnvelope(BaseModel):
    """Stored cache unit: creation time in epoch milliseconds plus the tree."""
    timestamp: int
    data: CategorizedTree


# Response models for API
class Page(BaseModel):
    """Paginated entry list response."""
    items: list[Any]
    page: int
    per_page: int
    total: int
    total_pages: int
    has_previous: bool
    has_next: bool


class LoadSummary(BaseModel):
    """Outcome of a feed load."""
    source: str
    from_cache: bool
    counts: dict[str, int]
    subcategories: dict[str, int]


class NavigateRequest(BaseModel):
    url: str


class NavigateResponse(BaseModel):
    allowed: bool
    player_url: str | None = None

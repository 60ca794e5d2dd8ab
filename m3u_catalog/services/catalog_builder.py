"""
Accumulator for the categorized tree.
The classifier places entries through this builder instead of mutating shared state.
"""
from m3u_catalog.models.catalog import (
    CategorizedTree,
    EpisodeEntry,
    MediaEntry,
    SeriesEntry,
)

FALLBACK_SUBCATEGORY = "Outros"


class CatalogBuilder:
    """Owns a CategorizedTree while it is being built."""

    def __init__(self, tree: CategorizedTree | None = None):
        self.tree = tree or CategorizedTree()

    def movie_bucket(self, subcategory: str) -> list[MediaEntry]:
        return self.tree.filmes.setdefault(subcategory or FALLBACK_SUBCATEGORY, [])

    def channel_bucket(self, subcategory: str) -> list[MediaEntry]:
        return self.tree.tv.setdefault(subcategory or FALLBACK_SUBCATEGORY, [])

    def series_bucket(self, subcategory: str) -> dict[str, SeriesEntry]:
        return self.tree.series.setdefault(subcategory or FALLBACK_SUBCATEGORY, {})

    def add_movie(self, subcategory: str, entry: MediaEntry) -> None:
        self.movie_bucket(subcategory).append(entry)

    def add_channel(self, subcategory: str, entry: MediaEntry) -> None:
        self.channel_bucket(subcategory).append(entry)

    def upsert_series(self, subcategory: str, display_name: str, logo: str = "") -> SeriesEntry:
        """Return the series for display_name, creating it on first sight."""
        shows = self.series_bucket(subcategory)
        key = display_name.lower()
        series = shows.get(key)
        if series is None:
            series = shows[key] = SeriesEntry(display_name=display_name, logo=logo)
        elif not series.logo and logo:
            series.logo = logo
        return series

    def add_episode(
        self,
        subcategory: str,
        display_name: str,
        season: str,
        episode: EpisodeEntry,
    ) -> SeriesEntry:
        series = self.upsert_series(subcategory, display_name, episode.logo)
        series.seasons.setdefault(season, []).append(episode)
        return series

    def build(self) -> CategorizedTree:
        return self.tree

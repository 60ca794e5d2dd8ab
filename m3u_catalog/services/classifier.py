"""
Heuristic classifier for playlist entries.

Each channel record is matched against an ordered rule table and placed
into one of the three domains (movies, series, linear channels).
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from m3u_catalog.errors import ClassificationError
from m3u_catalog.models.catalog import (
    CategorizedTree,
    ChannelRecord,
    Domain,
    EpisodeEntry,
    MediaEntry,
)
from m3u_catalog.services.catalog_builder import FALLBACK_SUBCATEGORY, CatalogBuilder

logger = logging.getLogger(__name__)

UNTITLED = "Sem Título"
MIN_MOVIE_TITLE_LENGTH = 5

DECORATIVE_GLYPHS = str.maketrans("", "", "◆◇★☆●•►▶»«")

EPISODE_PATTERN = re.compile(r's\d{1,2}\s*e\d{1,3}|temporada\s*\d+|epis[oó]dio\s*\d+')
LINEAR_CHANNEL_PATTERN = re.compile(
    r'\b(24h|canal|mix|ao vivo|live|4k|fhd|uhd|hd|sd|channel|tv|plus)\b'
)
SEASON_EPISODE_PATTERN = re.compile(r'^(.*?)\s*s(\d{1,2})\s*e(\d{1,3})')
SEASON_KEYWORD_PATTERN = re.compile(r'temporada\s*(\d+)')
EPISODE_KEYWORDS_PATTERN = re.compile(r'(temporada|epis[oó]dio).*')

CHANNEL_GROUP_MARKERS = ("canais", "canal", "channel")
SERIES_GROUP_MARKERS = ("serie", "série")
MOVIE_GROUP_MARKERS = ("filme", "movie")


def normalize_title(title: Optional[str]) -> str:
    """Trim and capitalize the first letter of every word."""
    title = (title or "").strip()
    if not title:
        return UNTITLED
    return re.sub(r'\b\w', lambda m: m.group(0).upper(), title)


def parse_group(group: str) -> tuple[str, str]:
    """Split a group-title like "◆ Series | Drama" into (main, sub)."""
    clean = (group or "").translate(DECORATIVE_GLYPHS).strip()
    parts = [part.strip() for part in clean.split("|")]
    main = parts[0].lower()
    sub = parts[1] if len(parts) > 1 and parts[1] else FALLBACK_SUBCATEGORY
    return main, sub


def has_episode_pattern(title: str) -> bool:
    return EPISODE_PATTERN.search(title.lower()) is not None


def looks_like_linear_channel(title: str) -> bool:
    return LINEAR_CHANNEL_PATTERN.search(title.lower()) is not None


def _group_has(main: str, markers: tuple[str, ...]) -> bool:
    return any(marker in main for marker in markers)


def split_episode(title: str) -> tuple[str, str, str]:
    """
    Extract (series name, season, episode title) from an episode title.

    "Breaking Bad S01E02" -> ("Breaking Bad", "1", "Episodio 2"). Titles
    without SxxEyy numbering fall back to stripping the season/episode
    keywords; the season comes from "temporada N" or defaults to "1".
    """
    lowered = title.strip().lower()
    match = SEASON_EPISODE_PATTERN.match(lowered)
    if match:
        return (
            normalize_title(match.group(1).strip(" -:|.")),
            str(int(match.group(2))),
            f"Episodio {int(match.group(3))}",
        )

    season_match = SEASON_KEYWORD_PATTERN.search(lowered)
    season = str(int(season_match.group(1))) if season_match else "1"
    name = EPISODE_KEYWORDS_PATTERN.sub("", lowered).strip(" -:|.")
    return normalize_title(name), season, normalize_title(title)


@dataclass(frozen=True)
class ClassificationContext:
    """Signals computed once per record and shared by all rules."""
    record: ChannelRecord
    main: str
    sub: str
    title: str
    has_episode_pattern: bool
    looks_like_linear_channel: bool

    @classmethod
    def from_record(cls, record: ChannelRecord) -> "ClassificationContext":
        main, sub = parse_group(record.group_raw)
        title = record.title.strip().lower()
        return cls(
            record=record,
            main=main,
            sub=sub,
            title=title,
            has_episode_pattern=has_episode_pattern(title),
            looks_like_linear_channel=looks_like_linear_channel(title),
        )

    def media_entry(self) -> MediaEntry:
        return MediaEntry(
            title=normalize_title(self.record.title),
            url=self.record.url,
            logo=self.record.logo,
        )


Placement = tuple[Domain, str]


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[ClassificationContext], bool]
    place: Callable[[CatalogBuilder, ClassificationContext], Placement]


def _to_fallback(builder: CatalogBuilder, ctx: ClassificationContext) -> Placement:
    builder.add_channel(FALLBACK_SUBCATEGORY, ctx.media_entry())
    return Domain.TV, FALLBACK_SUBCATEGORY


def _to_channels(builder: CatalogBuilder, ctx: ClassificationContext) -> Placement:
    builder.add_channel(ctx.sub, ctx.media_entry())
    return Domain.TV, ctx.sub


def _to_movies(builder: CatalogBuilder, ctx: ClassificationContext) -> Placement:
    builder.add_movie(ctx.sub, ctx.media_entry())
    return Domain.FILMES, ctx.sub


def _to_series(builder: CatalogBuilder, ctx: ClassificationContext) -> Placement:
    name, season, episode_title = split_episode(ctx.record.title)
    episode = EpisodeEntry(title=episode_title, url=ctx.record.url, logo=ctx.record.logo)
    builder.add_episode(ctx.sub, name, season, episode)
    return Domain.SERIES, ctx.sub


DEFAULT_RULES: tuple[Rule, ...] = (
    Rule("missing-url", lambda c: not c.record.url.strip(), _to_fallback),
    Rule(
        "linear-channel",
        lambda c: _group_has(c.main, CHANNEL_GROUP_MARKERS) or c.looks_like_linear_channel,
        _to_channels,
    ),
    Rule(
        "series-episode",
        lambda c: _group_has(c.main, SERIES_GROUP_MARKERS)
        and c.has_episode_pattern
        and not c.looks_like_linear_channel,
        _to_series,
    ),
    Rule("series-irregular", lambda c: _group_has(c.main, SERIES_GROUP_MARKERS), _to_channels),
    Rule(
        "movie",
        lambda c: _group_has(c.main, MOVIE_GROUP_MARKERS)
        and not c.looks_like_linear_channel
        and len(c.title) > MIN_MOVIE_TITLE_LENGTH,
        _to_movies,
    ),
    Rule("movie-irregular", lambda c: _group_has(c.main, MOVIE_GROUP_MARKERS), _to_channels),
    Rule("default", lambda c: True, _to_fallback),
)


class Classifier:
    """Place channel records into a categorized tree."""

    def __init__(self, rules: Iterable[Rule] = DEFAULT_RULES):
        self.rules = tuple(rules)
        self.failures = 0

    def place(self, builder: CatalogBuilder, record: ChannelRecord) -> Placement:
        """Apply the first matching rule. Raises ClassificationError on failure."""
        try:
            ctx = ClassificationContext.from_record(record)
            for rule in self.rules:
                if rule.predicate(ctx):
                    return rule.place(builder, ctx)
        except ClassificationError:
            raise
        except Exception as e:
            raise ClassificationError(record.title, str(e)) from e
        raise ClassificationError(record.title, "no rule matched")

    def classify(self, builder: CatalogBuilder, record: ChannelRecord) -> Placement:
        """Place a record, routing it to the fallback bucket if classification fails."""
        try:
            return self.place(builder, record)
        except ClassificationError as e:
            logger.warning(f"{e}; routing to {Domain.TV.value}/{FALLBACK_SUBCATEGORY}")
            self.failures += 1
            builder.add_channel(
                FALLBACK_SUBCATEGORY,
                MediaEntry(title=normalize_title(record.title), url=record.url, logo=record.logo),
            )
            return Domain.TV, FALLBACK_SUBCATEGORY

    def classify_all(
        self,
        records: Iterable[ChannelRecord],
        builder: Optional[CatalogBuilder] = None,
    ) -> CategorizedTree:
        builder = builder or CatalogBuilder()
        for record in records:
            self.classify(builder, record)
        return builder.build()

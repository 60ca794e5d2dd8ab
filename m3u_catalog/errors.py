"""
Error taxonomy for the playlist pipeline.

Only FeedUnavailable, BackgroundParseError and LoadInProgress reach callers;
the rest are recovered where they are raised.
"""
from typing import Optional


class CatalogError(Exception):
    """Base class for catalog pipeline errors."""


class FeedUnavailable(CatalogError):
    """Every feed source candidate failed."""

    def __init__(self, failures: Optional[list[tuple[str, str]]] = None):
        self.failures = failures or []
        if self.failures:
            detail = "; ".join(f"{source}: {reason}" for source, reason in self.failures)
        else:
            detail = "no feed sources configured"
        super().__init__(f"Playlist feed unavailable ({detail})")


class LineParseError(CatalogError):
    """A playlist metadata line could not be parsed."""

    def __init__(self, line_number: int, line: str, reason: str):
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason}")


class ClassificationError(CatalogError):
    """A channel record could not be placed into the tree."""

    def __init__(self, title: str, reason: str):
        self.title = title
        super().__init__(f"Failed to classify {title!r}: {reason}")


class CacheWriteError(CatalogError):
    """A cache backend could not store an envelope."""


class CacheReadError(CatalogError):
    """A cached envelope could not be read or decoded."""


class BackgroundParseError(CatalogError):
    """The background parse context crashed."""


class LoadInProgress(CatalogError):
    """A feed load is already running."""

    def __init__(self):
        super().__init__("A playlist load is already in progress")


class CatalogNotLoaded(CatalogError):
    """Queries were made before any playlist was loaded."""

    def __init__(self):
        super().__init__("Playlist catalog has not been loaded yet")

from __future__ import annotations

"""
Central enum definitions used across Reelkeeper.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (DB columns and the dashboard
  depend on them).
"""

from enum import Enum as PyEnum
from typing import Optional


# ──────────────────────────────────────────────────────────────
# Library
# ──────────────────────────────────────────────────────────────
class MediaKind(str, PyEnum):
    """Kind taxonomy of a library item."""
    MOVIE = "movie"
    SERIES = "series"

    @property
    def catalog_type(self) -> str:
        """Media type string used by the catalog API."""
        return "tv" if self is MediaKind.SERIES else "movie"

    @classmethod
    def from_catalog_type(cls, value: Optional[str]) -> Optional["MediaKind"]:
        """Map a catalog media type; anything else (e.g. `person`) → None."""
        if value == "movie":
            return cls.MOVIE
        if value == "tv":
            return cls.SERIES
        return None


class IngestStage(str, PyEnum):
    """Stages of an initial ingest (logged on every transition)."""
    RESOLVING = "Resolving"
    EXTRACTING_PRIMARY = "ExtractingPrimary"
    EXTRACTING_EPISODES = "ExtractingEpisodes"
    COMMITTING = "Committing"
    DONE = "Done"
    FAILED = "Failed"


# ──────────────────────────────────────────────────────────────
# Discovery
# ──────────────────────────────────────────────────────────────
class DiscoverFilter(str, PyEnum):
    """Named catalog feeds offered on the discovery screen."""
    TRENDING = "trending"
    TOP_RATED_MOVIES = "top-rated-movies"
    TOP_RATED_TV = "top-rated-tv"
    UPCOMING = "upcoming"
    NOW_PLAYING = "now-playing"
    POPULAR_TV = "popular-tv"
    FAMILY_MOVIES = "family-movies"
    FAMILY_TV = "family-tv"
    DOCUMENTARIES = "documentaries"
    COMEDY = "comedy"
    ROM_COM = "rom-com"


__all__ = [
    "MediaKind",
    "IngestStage",
    "DiscoverFilter",
]

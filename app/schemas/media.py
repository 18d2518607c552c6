from __future__ import annotations

"""
Reelkeeper • Library Schemas
============================

Purpose
-------
- Request bodies for add-media, episode re-sync and watched toggles.
- Read models for the detail view and the grouped dashboard.

Design
------
- Request bodies accept the dashboard's camelCase keys (`primaryUrl`,
  `catalogId`, `guideUrl`) and the snake_case field names.
- Read models are built straight from ORM rows (`from_attributes`).
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.enums import MediaKind


# === Requests ==============================================================

class AddMediaIn(BaseModel):
    """Either a primary-source URL or a catalog id + kind."""
    model_config = ConfigDict(populate_by_name=True)

    primary_url: Optional[str] = Field(None, alias="primaryUrl", max_length=2048)
    catalog_id: Optional[int] = Field(None, alias="catalogId", ge=1)
    kind: Optional[MediaKind] = None

    @model_validator(mode="after")
    def _strip(self) -> "AddMediaIn":
        if self.primary_url is not None:
            self.primary_url = self.primary_url.strip() or None
        return self


class ResyncIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    guide_url: Optional[str] = Field(None, alias="guideUrl", max_length=2048)


class WatchedIn(BaseModel):
    is_watched: bool = Field(..., alias="isWatched")

    model_config = ConfigDict(populate_by_name=True)


# === Read models ===========================================================

class EpisodeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    episode_number: int
    title: Optional[str] = None
    air_date: Optional[date] = None
    is_watched: bool = False


class SeasonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    season_number: int
    year: Optional[int] = None
    is_watched: bool = False
    episodes: List[EpisodeOut] = []


class NamedOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class MediaSummaryOut(BaseModel):
    """Card-sized view used by the grouped dashboard."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    title: str
    kind: MediaKind
    year: Optional[int] = None
    poster_url: Optional[str] = None
    rating: Optional[str] = None
    is_watched: bool = False


class MediaDetailOut(MediaSummaryOut):
    """Item plus its genre, actor and season → episode closures."""
    description: Optional[str] = None
    episode_guide_url: Optional[str] = None
    genres: List[NamedOut] = []
    actors: List[NamedOut] = []
    seasons: List[SeasonOut] = []


class MediaGroupOut(BaseModel):
    name: str
    items: List[MediaSummaryOut]

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.enums import DiscoverFilter, MediaKind


class DiscoverItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    catalog_id: int
    kind: MediaKind
    title: str
    poster_url: Optional[str] = None
    year: Optional[int] = None
    overview: Optional[str] = None
    rating: Optional[float] = None


class DiscoverPage(BaseModel):
    filter: DiscoverFilter
    page: int
    count: int
    items: List[DiscoverItemOut]


class RemoteSearchOut(BaseModel):
    query: str
    items: List[DiscoverItemOut]

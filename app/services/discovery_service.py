from __future__ import annotations

"""
Reelkeeper — Discovery aggregator
=================================

Read-only fan-out over the catalog API for the discovery screen.

Algorithm
---------
1. Map the named filter to a catalog path + fixed params (`filter_spec`).
2. Fetch pages `page .. page+count-1` concurrently; one failed page fails
   the whole call and cancels the pages still in flight (no partial
   results, no retry).
3. `aggregate`: dedup by catalog id keeping first-seen order, map the media
   type to `MediaKind` (persons and other types dropped), drop entries
   without a poster, drop titles already in the library (case-insensitive).

Remote search uses the same mapping on `/search/multi`, capped to
`SEARCH_RESULT_LIMIT`.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set

from loguru import logger

from app.core.config import settings
from app.schemas.enums import DiscoverFilter, MediaKind
from app.services.catalog_client import CatalogClient


@dataclass(frozen=True)
class FilterSpec:
    path: str
    media_type: Optional[str]
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DiscoverItem:
    catalog_id: int
    kind: MediaKind
    title: str
    poster_url: Optional[str]
    year: Optional[int] = None
    overview: Optional[str] = None
    rating: Optional[float] = None


# ─────────────────────────────────────────────────────────────
# 🗺️ Filter table
# ─────────────────────────────────────────────────────────────
_FIXED_FILTERS: Dict[DiscoverFilter, FilterSpec] = {
    DiscoverFilter.TRENDING: FilterSpec("/trending/all/week", None),
    DiscoverFilter.TOP_RATED_MOVIES: FilterSpec("/movie/top_rated", "movie"),
    DiscoverFilter.TOP_RATED_TV: FilterSpec("/tv/top_rated", "tv"),
    DiscoverFilter.NOW_PLAYING: FilterSpec("/movie/now_playing", "movie"),
    DiscoverFilter.POPULAR_TV: FilterSpec("/tv/popular", "tv"),
    DiscoverFilter.FAMILY_MOVIES: FilterSpec("/discover/movie", "movie", {"with_genres": "10751"}),
    DiscoverFilter.FAMILY_TV: FilterSpec("/discover/tv", "tv", {"with_genres": "10751"}),
    DiscoverFilter.DOCUMENTARIES: FilterSpec("/discover/movie", "movie", {"with_genres": "99"}),
    DiscoverFilter.COMEDY: FilterSpec("/discover/movie", "movie", {"with_genres": "35"}),
    DiscoverFilter.ROM_COM: FilterSpec("/discover/movie", "movie", {"with_genres": "10749,35"}),
}


def filter_spec(name: DiscoverFilter, today: Optional[date] = None) -> FilterSpec:
    """Catalog endpoint for *name*; "upcoming" gets a rolling release window from *today*."""
    if name is DiscoverFilter.UPCOMING:
        today = today or date.today()
        until = today + timedelta(days=settings.UPCOMING_WINDOW_DAYS)
        return FilterSpec(
            "/discover/movie",
            "movie",
            {
                "primary_release_date.gte": today.isoformat(),
                "primary_release_date.lte": until.isoformat(),
                "sort_by": "popularity.desc",
            },
        )
    return _FIXED_FILTERS[name]


# ─────────────────────────────────────────────────────────────
# 🧮 Pure aggregation
# ─────────────────────────────────────────────────────────────
def _year(raw: Dict[str, Any]) -> Optional[int]:
    value = raw.get("release_date") or raw.get("first_air_date") or ""
    try:
        return int(value[:4])
    except ValueError:
        return None


def aggregate(
    pages: Iterable[List[Dict[str, Any]]],
    *,
    default_media_type: Optional[str],
    library_titles: Set[str],
    catalog: CatalogClient,
    require_poster: bool = True,
) -> List[DiscoverItem]:
    """Merge catalog result pages into an ordered, deduplicated item list.

    `library_titles` holds lower-cased titles already in the library.
    """
    seen: Set[int] = set()
    items: List[DiscoverItem] = []
    for results in pages:
        for raw in results:
            catalog_id = raw.get("id")
            if not isinstance(catalog_id, int) or catalog_id in seen:
                continue
            seen.add(catalog_id)

            kind = MediaKind.from_catalog_type(raw.get("media_type") or default_media_type)
            if kind is None:
                continue
            poster = catalog.poster_url(raw.get("poster_path"))
            if require_poster and poster is None:
                continue
            title = (raw.get("title") or raw.get("name") or "").strip()
            if not title or title.lower() in library_titles:
                continue

            items.append(
                DiscoverItem(
                    catalog_id=catalog_id,
                    kind=kind,
                    title=title,
                    poster_url=poster,
                    year=_year(raw),
                    overview=raw.get("overview") or None,
                    rating=raw.get("vote_average"),
                )
            )
    return items


# ─────────────────────────────────────────────────────────────
# 🌐 Service
# ─────────────────────────────────────────────────────────────
class DiscoveryService:
    def __init__(self, catalog: CatalogClient, *, max_pages: Optional[int] = None) -> None:
        self._catalog = catalog
        self._max_pages = max_pages or settings.DISCOVER_MAX_PAGES

    async def discover(
        self,
        name: DiscoverFilter,
        *,
        page: int = 1,
        count: int = 1,
        library_titles: Optional[Set[str]] = None,
    ) -> List[DiscoverItem]:
        """Fetch `count` pages of a feed concurrently and aggregate them."""
        self._catalog.ensure_configured()
        spec = filter_spec(name)
        count = max(1, min(count, self._max_pages))
        pages = await self._fetch_pages(spec, range(page, page + count))
        items = aggregate(
            pages,
            default_media_type=spec.media_type,
            library_titles=library_titles or set(),
            catalog=self._catalog,
        )
        logger.info(
            "Discover {} pages {}..{}: {} fetched, {} kept",
            name.value,
            page,
            page + count - 1,
            sum(len(p) for p in pages),
            len(items),
        )
        return items

    async def _fetch_pages(self, spec: FilterSpec, numbers: range) -> List[List[Dict[str, Any]]]:
        """All pages in order, or the first failure with every sibling fetch cancelled."""
        tasks = [
            asyncio.ensure_future(self._catalog.list_page(spec.path, spec.params, p)) for p in numbers
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in tasks:
            if task in done and task.exception() is not None:
                raise task.exception()
        return [task.result() for task in tasks]

    async def search_remote(self, query: str, *, limit: Optional[int] = None) -> List[DiscoverItem]:
        """Cross-media catalog search; persons are dropped, posters optional."""
        self._catalog.ensure_configured()
        results = await self._catalog.search_multi(query)
        items = aggregate(
            [results],
            default_media_type=None,
            library_titles=set(),
            catalog=self._catalog,
            require_poster=False,
        )
        return items[: limit or settings.SEARCH_RESULT_LIMIT]


__all__ = ["FilterSpec", "DiscoverItem", "filter_spec", "aggregate", "DiscoveryService"]

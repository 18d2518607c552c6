# tests/test_services/test_discovery.py
from __future__ import annotations

import asyncio
from datetime import date
from typing import Any, Dict, List

import httpx
import pytest

from app.core.exceptions import ServiceNotConfigured, UpstreamError
from app.schemas.enums import DiscoverFilter, MediaKind
from app.services.catalog_client import CatalogClient
from app.services.discovery_service import DiscoveryService, aggregate, filter_spec
from tests.fixtures.pages import TMDB

IMAGE_BASE = "https://image.tmdb.org/t/p/w500"


def _movie(catalog_id: int, title: str, *, poster: str | None = "/p.jpg", **extra) -> Dict[str, Any]:
    return {"id": catalog_id, "title": title, "poster_path": poster, "release_date": "1995-12-15", **extra}


def _paged(pages: Dict[int, List[Dict[str, Any]]]):
    def _respond(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        return httpx.Response(200, json={"page": page, "results": pages.get(page, [])})

    return _respond


@pytest.fixture()
def catalog(http_client) -> CatalogClient:
    return CatalogClient(http_client, api_key="k")


# ──────────────────────────────────────────────────────────────────────
# Filter table
# ──────────────────────────────────────────────────────────────────────
def test_upcoming_window_is_rolling_from_today():
    spec = filter_spec(DiscoverFilter.UPCOMING, today=date(2026, 1, 1))

    assert spec.path == "/discover/movie"
    assert spec.media_type == "movie"
    assert spec.params["primary_release_date.gte"] == "2026-01-01"
    assert spec.params["primary_release_date.lte"] == "2026-04-01"
    assert spec.params["sort_by"] == "popularity.desc"


@pytest.mark.parametrize(
    "name, path, media_type, genres",
    [
        (DiscoverFilter.TRENDING, "/trending/all/week", None, None),
        (DiscoverFilter.TOP_RATED_TV, "/tv/top_rated", "tv", None),
        (DiscoverFilter.FAMILY_TV, "/discover/tv", "tv", "10751"),
        (DiscoverFilter.DOCUMENTARIES, "/discover/movie", "movie", "99"),
        (DiscoverFilter.ROM_COM, "/discover/movie", "movie", "10749,35"),
    ],
)
def test_fixed_filters(name, path, media_type, genres):
    spec = filter_spec(name)
    assert (spec.path, spec.media_type, spec.params.get("with_genres")) == (path, media_type, genres)


def test_every_filter_has_an_endpoint():
    for name in DiscoverFilter:
        assert filter_spec(name, today=date(2026, 1, 1)).path.startswith("/")


# ──────────────────────────────────────────────────────────────────────
# Aggregation
# ──────────────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_aggregate_dedups_first_seen_and_maps_kinds(catalog):
    pages = [
        [
            _movie(42, "Heat", media_type="movie"),
            {"id": 7, "name": "Breaking Bad", "poster_path": "/bb.jpg", "media_type": "tv", "first_air_date": "2008-01-20"},
        ],
        [
            _movie(42, "Heat (duplicate)", media_type="movie"),
            {"id": 9, "name": "Al Pacino", "profile_path": "/al.jpg", "media_type": "person"},
        ],
    ]

    items = aggregate(pages, default_media_type=None, library_titles=set(), catalog=catalog)

    assert [(i.catalog_id, i.kind, i.title) for i in items] == [
        (42, MediaKind.MOVIE, "Heat"),
        (7, MediaKind.SERIES, "Breaking Bad"),
    ]
    assert items[0].poster_url == f"{IMAGE_BASE}/p.jpg"
    assert (items[0].year, items[1].year) == (1995, 2008)


@pytest.mark.anyio
async def test_aggregate_requires_poster_and_skips_library_titles(catalog):
    pages = [[_movie(1, "No Poster", poster=None), _movie(2, "HEAT"), _movie(3, "Ronin", release_date="")]]

    items = aggregate(pages, default_media_type="movie", library_titles={"heat"}, catalog=catalog)

    assert [(i.catalog_id, i.year) for i in items] == [(3, None)]


# ──────────────────────────────────────────────────────────────────────
# Service
# ──────────────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_discover_fetches_requested_page_range(catalog, fake_web):
    fake_web.add(
        f"{TMDB}/movie/top_rated",
        _paged({2: [_movie(1, "A")], 3: [_movie(2, "B")], 4: [_movie(1, "A again"), _movie(3, "C")]}),
    )

    items = await DiscoveryService(catalog).discover(DiscoverFilter.TOP_RATED_MOVIES, page=2, count=3)

    assert [i.title for i in items] == ["A", "B", "C"]
    assert all(i.kind is MediaKind.MOVIE for i in items)
    assert sorted(c.url.params["page"] for c in fake_web.calls) == ["2", "3", "4"]
    assert {c.url.params["api_key"] for c in fake_web.calls} == {"k"}
    assert {c.url.params["language"] for c in fake_web.calls} == {"en-US"}


@pytest.mark.anyio
async def test_discover_passes_filter_params(catalog, fake_web):
    fake_web.add(f"{TMDB}/discover/movie", _paged({1: [_movie(5, "Amélie")]}))

    items = await DiscoveryService(catalog).discover(DiscoverFilter.ROM_COM)

    assert [i.title for i in items] == ["Amélie"]
    (call,) = fake_web.calls
    assert call.url.params["with_genres"] == "10749,35"


@pytest.mark.anyio
async def test_discover_clamps_page_count(catalog, fake_web):
    fake_web.add(f"{TMDB}/tv/popular", _paged({}))

    await DiscoveryService(catalog, max_pages=2).discover(DiscoverFilter.POPULAR_TV, count=5)

    assert len(fake_web.calls) == 2


@pytest.mark.anyio
async def test_discover_excludes_library_titles(catalog, fake_web):
    fake_web.add(f"{TMDB}/movie/now_playing", _paged({1: [_movie(1, "Heat"), _movie(2, "Ronin")]}))

    items = await DiscoveryService(catalog).discover(DiscoverFilter.NOW_PLAYING, library_titles={"heat"})

    assert [i.title for i in items] == ["Ronin"]


@pytest.mark.anyio
async def test_one_failed_page_fails_the_call(catalog, fake_web):
    def _respond(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "2":
            return httpx.Response(500, json={"status_message": "boom"})
        return httpx.Response(200, json={"results": [_movie(1, "A")]})

    fake_web.add(f"{TMDB}/movie/top_rated", _respond)

    with pytest.raises(UpstreamError):
        await DiscoveryService(catalog).discover(DiscoverFilter.TOP_RATED_MOVIES, count=3)


@pytest.mark.anyio
async def test_failed_page_cancels_pages_in_flight(catalog, monkeypatch):
    finished: List[int] = []

    async def _list_page(path, params, page):
        if page == 1:
            raise UpstreamError("Catalog request failed")
        await asyncio.sleep(0.2)
        finished.append(page)
        return [_movie(page, f"Page {page}")]

    monkeypatch.setattr(catalog, "list_page", _list_page)

    with pytest.raises(UpstreamError):
        await DiscoveryService(catalog).discover(DiscoverFilter.TOP_RATED_MOVIES, count=3)

    await asyncio.sleep(0.3)
    assert finished == []


@pytest.mark.anyio
async def test_unconfigured_catalog_makes_no_calls(http_client, fake_web):
    service = DiscoveryService(CatalogClient(http_client, api_key=None))

    with pytest.raises(ServiceNotConfigured) as exc:
        await service.discover(DiscoverFilter.TRENDING)
    assert exc.value.status_code == 503

    with pytest.raises(ServiceNotConfigured):
        await service.search_remote("heat")
    assert fake_web.calls == []


@pytest.mark.anyio
async def test_search_remote_caps_results_and_drops_people(catalog, fake_web):
    results = [{"id": 1000, "name": "Al Pacino", "media_type": "person"}]
    results += [_movie(i, f"Heat {i}", poster=None, media_type="movie") for i in range(1, 16)]
    fake_web.add_json(f"{TMDB}/search/multi", {"results": results})

    items = await DiscoveryService(catalog).search_remote("heat")

    assert len(items) == 10
    assert items[0].title == "Heat 1"
    assert items[0].poster_url is None
    (call,) = fake_web.calls
    assert call.url.params["query"] == "heat"
    assert call.url.params["include_adult"] == "false"


@pytest.mark.anyio
async def test_search_remote_explicit_limit(catalog, fake_web):
    fake_web.add_json(
        f"{TMDB}/search/multi",
        {"results": [_movie(i, f"T{i}", media_type="movie") for i in range(1, 6)]},
    )

    items = await DiscoveryService(catalog).search_remote("t", limit=3)

    assert [i.catalog_id for i in items] == [1, 2, 3]

# tests/test_services/test_identifier_resolver.py
from __future__ import annotations

import pytest

from app.core.exceptions import InvalidIdentifier, NotFound, UpstreamError, UpstreamUnavailable
from app.schemas.enums import MediaKind
from app.services.catalog_client import CatalogClient
from app.services.identifier_resolver import parse_primary_url, resolve_identifier
from tests.fixtures.pages import TMDB


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.imdb.com/title/tt0903747/", "tt0903747"),
        ("https://www.imdb.com/title/tt0903747/?ref_=fn_al_tt_1", "tt0903747"),
        ("https://m.imdb.com/title/tt0113277", "tt0113277"),
        ("imdb.com/title/tt0386676/episodes", "tt0386676"),
    ],
)
def test_parse_primary_url_extracts_token_after_title(url, expected):
    assert parse_primary_url(url) == expected


@pytest.mark.parametrize("url", ["", "https://www.imdb.com/name/nm0000199/", "https://example.com/title/"])
def test_parse_primary_url_rejects_non_title_urls(url):
    with pytest.raises(InvalidIdentifier) as exc:
        parse_primary_url(url)
    assert exc.value.status_code == 400


@pytest.mark.anyio
async def test_url_wins_over_catalog_id(http_client, fake_web):
    catalog = CatalogClient(http_client, api_key="k")
    external_id = await resolve_identifier(
        primary_url="https://www.imdb.com/title/tt0903747/",
        catalog_id=1396,
        kind=MediaKind.SERIES,
        catalog=catalog,
    )
    assert external_id == "tt0903747"
    assert fake_web.calls == []


@pytest.mark.anyio
async def test_catalog_id_resolves_through_external_ids(http_client, fake_web):
    fake_web.add_json(f"{TMDB}/tv/1396/external_ids", {"id": 1396, "imdb_id": "tt0903747"})
    catalog = CatalogClient(http_client, api_key="k")

    external_id = await resolve_identifier(catalog_id=1396, kind=MediaKind.SERIES, catalog=catalog)

    assert external_id == "tt0903747"
    (call,) = fake_web.calls
    assert call.url.params["api_key"] == "k"


@pytest.mark.anyio
async def test_movie_kind_uses_movie_path(http_client, fake_web):
    fake_web.add_json(f"{TMDB}/movie/949/external_ids", {"imdb_id": "tt0113277"})
    catalog = CatalogClient(http_client, api_key="k")

    assert await resolve_identifier(catalog_id=949, kind=MediaKind.MOVIE, catalog=catalog) == "tt0113277"


@pytest.mark.anyio
@pytest.mark.parametrize("imdb_id", [None, "", "   "])
async def test_catalog_without_primary_id_is_not_found(http_client, fake_web, imdb_id):
    fake_web.add_json(f"{TMDB}/movie/7/external_ids", {"imdb_id": imdb_id})
    catalog = CatalogClient(http_client, api_key="k")

    with pytest.raises(NotFound):
        await resolve_identifier(catalog_id=7, kind=MediaKind.MOVIE, catalog=catalog)


@pytest.mark.anyio
async def test_catalog_http_failure_is_upstream_error(http_client, fake_web):
    fake_web.add_json(f"{TMDB}/movie/7/external_ids", {"status_message": "boom"}, status=500)
    catalog = CatalogClient(http_client, api_key="k")

    with pytest.raises(UpstreamError):
        await resolve_identifier(catalog_id=7, kind=MediaKind.MOVIE, catalog=catalog)


@pytest.mark.anyio
async def test_missing_inputs_are_invalid():
    with pytest.raises(InvalidIdentifier):
        await resolve_identifier()
    with pytest.raises(InvalidIdentifier):
        await resolve_identifier(catalog_id=5)


@pytest.mark.anyio
async def test_unconfigured_catalog_is_unavailable(http_client, fake_web):
    with pytest.raises(UpstreamUnavailable) as exc:
        await resolve_identifier(
            catalog_id=5, kind=MediaKind.MOVIE, catalog=CatalogClient(http_client, api_key=None)
        )
    assert exc.value.status_code == 503
    assert fake_web.calls == []

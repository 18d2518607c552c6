# tests/test_services/test_reconciliation.py
from __future__ import annotations

import pytest
from loguru import logger

from app.core.exceptions import (
    Conflict,
    EpisodeGuideUnavailable,
    ExtractionFailed,
    NotFound,
    UnsupportedOperation,
)
from app.db.models import Actor, Episode, Genre, MediaItem, Season, media_genres
from app.schemas.enums import MediaKind
from app.services import reconciliation
from app.services.catalog_client import CatalogClient
from app.services.reconciliation import ReconciliationEngine
from tests.fixtures.pages import (
    TMDB,
    epguides_page,
    epguides_url,
    guide_header,
    guide_row,
    imdb_title_page,
    imdb_url,
)
from tests.utils.factory import count_rows, create_media, create_series, load_item, load_tree

HEAT = "tt0113277"
BREAKING_BAD = "tt0903747"


def _breaking_bad_page(**kwargs) -> str:
    kwargs.setdefault("genres", ("Crime", "Drama"))
    kwargs.setdefault("actors", ("Bryan Cranston", "Aaron Paul"))
    return imdb_title_page("Breaking Bad", year=2008, series=True, rating="9.5/10", **kwargs)


def _breaking_bad_guide() -> str:
    return epguides_page(
        [
            guide_header("Season 1"),
            guide_row("1-1", "20 Jan 08", "Pilot"),
            guide_row("1-2", "27 Jan 08", "Cat's in the Bag..."),
            guide_header("Season 2"),
            guide_row("2-1", "08 Mar 09", "Seven Thirty-Seven"),
        ]
    )


@pytest.fixture()
def engine(session_factory, http_client) -> ReconciliationEngine:
    return ReconciliationEngine(session_factory, http=http_client)


# ──────────────────────────────────────────────────────────────────────
# Ingest
# ──────────────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_ingest_movie_writes_item_and_links(engine, fake_web):
    fake_web.add_html(imdb_url(HEAT), imdb_title_page())

    media_id = await engine.ingest(primary_url=f"https://www.imdb.com/title/{HEAT}/?ref_=nv")

    item = await load_item(media_id)
    assert item.external_id == HEAT
    assert item.title == "Heat"
    assert item.kind is MediaKind.MOVIE
    assert item.year == 1995
    assert item.rating == "8.3"
    assert item.is_watched is False
    assert item.episode_guide_url is None
    assert [g.name for g in item.genres] == ["Action", "Crime"]
    assert [a.name for a in item.actors] == ["Al Pacino", "Robert De Niro"]
    assert item.seasons == []
    # movies never touch the episode guide
    assert {c.url.host for c in fake_web.calls} == {"www.imdb.com"}


@pytest.mark.anyio
async def test_ingest_series_persists_episode_tree(engine, fake_web):
    fake_web.add_html(imdb_url(BREAKING_BAD), _breaking_bad_page())
    fake_web.add_html(epguides_url("BreakingBad"), _breaking_bad_guide())

    media_id = await engine.ingest(primary_url=imdb_url(BREAKING_BAD))

    item = await load_item(media_id)
    assert item.kind is MediaKind.SERIES
    assert item.episode_guide_url == epguides_url("BreakingBad")
    assert [(s.season_number, s.year) for s in item.seasons] == [(1, 2008), (2, 2009)]
    assert await load_tree(media_id) == {
        (1, 1): ("Pilot", False),
        (1, 2): ("Cat's in the Bag...", False),
        (2, 1): ("Seven Thirty-Seven", False),
    }


@pytest.mark.anyio
async def test_ingest_via_catalog_id(session_factory, http_client, fake_web):
    fake_web.add_json(f"{TMDB}/movie/949/external_ids", {"imdb_id": HEAT})
    fake_web.add_html(imdb_url(HEAT), imdb_title_page())
    engine = ReconciliationEngine(
        session_factory, http=http_client, catalog=CatalogClient(http_client, api_key="k")
    )

    media_id = await engine.ingest(catalog_id=949, kind=MediaKind.MOVIE)

    assert (await load_item(media_id)).external_id == HEAT


@pytest.mark.anyio
async def test_genres_and_actors_are_shared_between_items(engine, fake_web):
    fake_web.add_html(imdb_url(HEAT), imdb_title_page(actors=("Al Pacino",)))
    fake_web.add_html(imdb_url(BREAKING_BAD), _breaking_bad_page(actors=("Al Pacino",)))
    fake_web.add_html(epguides_url("BreakingBad"), _breaking_bad_guide())

    await engine.ingest(primary_url=imdb_url(HEAT))
    await engine.ingest(primary_url=imdb_url(BREAKING_BAD))

    assert await count_rows(Genre) == 3  # Action, Crime, Drama
    assert await count_rows(media_genres) == 4
    assert await count_rows(Actor) == 1


@pytest.mark.anyio
async def test_duplicate_and_overlong_names_are_linked_once(engine, fake_web):
    long_genre = "X" * 150
    fake_web.add_html(imdb_url(HEAT), imdb_title_page(genres=("Drama", "Drama", long_genre)))

    media_id = await engine.ingest(primary_url=imdb_url(HEAT))

    names = [g.name for g in (await load_item(media_id)).genres]
    assert names == ["Drama", "X" * 100]


@pytest.mark.anyio
async def test_overlong_name_truncation_is_logged(engine, fake_web):
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), level="WARNING")
    fake_web.add_html(imdb_url(HEAT), imdb_title_page(actors=("A" * 300,)))

    try:
        await engine.ingest(primary_url=imdb_url(HEAT))
    finally:
        logger.remove(sink_id)

    assert any("truncated to 255" in r["message"] for r in records)
    assert await count_rows(Actor) == 1


@pytest.mark.anyio
async def test_lookup_name_inserted_concurrently_is_reused(engine, fake_web, db_session, monkeypatch):
    """The genre check misses, then the insert hits the row another ingest committed."""
    other = await create_media(db_session, external_id="tt0122690", title="Ronin", genres=["Crime"])
    fake_web.add_html(imdb_url(HEAT), imdb_title_page(genres=("Crime",)))

    real_find_id = reconciliation._find_id
    missed = set()

    async def _stale_find_id(db, model, name):
        if (model, name) not in missed:
            missed.add((model, name))
            return None
        return await real_find_id(db, model, name)

    monkeypatch.setattr(reconciliation, "_find_id", _stale_find_id)

    media_id = await engine.ingest(primary_url=imdb_url(HEAT))

    assert await count_rows(Genre) == 1
    assert [g.name for g in (await load_item(media_id)).genres] == ["Crime"]
    assert [g.name for g in (await load_item(other.id)).genres] == ["Crime"]
    assert await count_rows(Actor) == 2


@pytest.mark.anyio
async def test_series_without_guide_is_committed_with_no_seasons(engine, fake_web):
    fake_web.add_html(imdb_url(BREAKING_BAD), _breaking_bad_page())  # guide URL answers 404

    media_id = await engine.ingest(primary_url=imdb_url(BREAKING_BAD))

    item = await load_item(media_id)
    assert item.kind is MediaKind.SERIES
    assert item.seasons == []
    assert item.episode_guide_url is None
    assert len(fake_web.hits(epguides_url("BreakingBad"))) == 1


@pytest.mark.anyio
async def test_extraction_failure_leaves_no_rows(engine, fake_web):
    fake_web.add_html(imdb_url(HEAT), imdb_title_page(title=None, genres=("Crime",)))

    with pytest.raises(ExtractionFailed):
        await engine.ingest(primary_url=imdb_url(HEAT))

    assert await count_rows(MediaItem) == 0
    assert await count_rows(Genre) == 0


@pytest.mark.anyio
async def test_known_external_id_conflicts_before_scraping(engine, fake_web):
    fake_web.add_html(imdb_url(HEAT), imdb_title_page())
    first = await engine.ingest(primary_url=imdb_url(HEAT))

    with pytest.raises(Conflict) as exc:
        await engine.ingest(primary_url=f"https://www.imdb.com/title/{HEAT}/reviews")

    assert exc.value.existing_id == first
    assert exc.value.status_code == 409
    assert len(fake_web.hits(imdb_url(HEAT))) == 1
    assert await count_rows(MediaItem) == 1


@pytest.mark.anyio
async def test_unique_constraint_race_reports_winner(engine, fake_web, db_session, monkeypatch):
    """Both existence checks miss; the insert loses on the unique key."""
    fake_web.add_html(imdb_url(HEAT), imdb_title_page())
    winner = await create_media(db_session, external_id=HEAT, title="Heat")

    real_existing_id = reconciliation._existing_id
    calls = {"n": 0}

    async def _stale_existing_id(db, external_id):
        calls["n"] += 1
        if calls["n"] <= 2:
            return None
        return await real_existing_id(db, external_id)

    monkeypatch.setattr(reconciliation, "_existing_id", _stale_existing_id)

    with pytest.raises(Conflict) as exc:
        await engine.ingest(primary_url=imdb_url(HEAT))

    assert exc.value.existing_id == winner.id
    assert await count_rows(MediaItem) == 1
    assert await count_rows(Genre) == 0


# ──────────────────────────────────────────────────────────────────────
# Re-sync
# ──────────────────────────────────────────────────────────────────────
async def _seed_breaking_bad(db_session, **kwargs) -> MediaItem:
    return await create_series(
        db_session,
        external_id=BREAKING_BAD,
        title="Breaking Bad",
        seasons={
            1: [(1, "Pilot", True), (2, "Cat's in the Bag...", False)],
            2: [(1, "Seven Thirty-Seven", True)],
        },
        **kwargs,
    )


def _reshuffled_guide() -> str:
    return epguides_page(
        [
            guide_header("Season 1"),
            guide_row("1-1", "20 Jan 08", "Pilot (Remastered)"),
            guide_row("1-2", "27 Jan 08", "Cat's in the Bag..."),
            guide_row("1-3", "10 Feb 08", "...And the Bag's in the River"),
            guide_header("Season 3"),
            guide_row("3-1", "21 Mar 10", "No Más"),
        ]
    )


@pytest.mark.anyio
async def test_resync_restores_watched_flags_by_key(engine, fake_web, db_session):
    item = await _seed_breaking_bad(db_session, watched_seasons=[1, 2])
    fake_web.add_html(epguides_url("BreakingBad"), _reshuffled_guide())

    report = await engine.resync_episodes(item.id)

    assert report.guide_url == epguides_url("BreakingBad")
    assert (report.seasons, report.episodes) == (2, 4)
    assert report.watched_restored == 1
    assert report.watched_dropped == 1  # (2, 1) vanished upstream
    assert await load_tree(item.id) == {
        (1, 1): ("Pilot (Remastered)", True),
        (1, 2): ("Cat's in the Bag...", False),
        (1, 3): ("...And the Bag's in the River", False),
        (3, 1): ("No Más", False),
    }
    reloaded = await load_item(item.id)
    assert [(s.season_number, s.is_watched) for s in reloaded.seasons] == [(1, True), (3, False)]
    assert reloaded.episode_guide_url == epguides_url("BreakingBad")


@pytest.mark.anyio
async def test_resync_with_explicit_url_caches_it(engine, fake_web, db_session):
    item = await _seed_breaking_bad(db_session)
    custom = "https://epguides.com/BreakingBad_2008/"
    fake_web.add_html(custom, _reshuffled_guide())

    await engine.resync_episodes(item.id, guide_url=custom)
    await engine.resync_episodes(item.id)

    assert (await load_item(item.id)).episode_guide_url == custom
    assert len(fake_web.hits(custom)) == 2
    assert fake_web.hits(epguides_url("BreakingBad")) == []


@pytest.mark.anyio
async def test_resync_movie_is_unsupported(engine, fake_web, db_session):
    movie = await create_media(db_session)

    with pytest.raises(UnsupportedOperation):
        await engine.resync_episodes(movie.id)
    assert fake_web.calls == []


@pytest.mark.anyio
async def test_resync_unknown_id_is_not_found(engine, fake_web, database):
    with pytest.raises(NotFound):
        await engine.resync_episodes(12345)
    assert fake_web.calls == []


@pytest.mark.anyio
async def test_resync_guide_failure_leaves_tree_untouched(engine, fake_web, db_session):
    item = await _seed_breaking_bad(db_session)
    before = await load_tree(item.id)

    with pytest.raises(EpisodeGuideUnavailable):
        await engine.resync_episodes(item.id)

    assert await load_tree(item.id) == before
    assert (await load_item(item.id)).episode_guide_url is None


@pytest.mark.anyio
async def test_resync_failure_mid_transaction_rolls_back(engine, fake_web, db_session, monkeypatch):
    item = await _seed_breaking_bad(db_session)
    fake_web.add_html(epguides_url("BreakingBad"), _reshuffled_guide())
    before = await load_tree(item.id)

    async def _explode(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(reconciliation, "_persist_guide", _explode)

    with pytest.raises(RuntimeError):
        await engine.resync_episodes(item.id)

    assert await load_tree(item.id) == before
    assert await count_rows(Season) == 2
    assert await count_rows(Episode) == 3
    assert (await load_item(item.id)).episode_guide_url is None

from __future__ import annotations

"""
Reelkeeper — Reconciliation engine (ingest & re-sync)
=====================================================

Owns the only write path that creates MediaItems and the whole
Season/Episode tree.

Initial ingest
--------------
    Resolving → ExtractingPrimary → [ExtractingEpisodes] → Committing → Done | Failed

- A known external id short-circuits with `Conflict(existing_id)` before any
  scraping. The unique constraint on `media_items.external_id` decides races:
  an `IntegrityError` at commit is reported as `Conflict` with the winner's id.
- Scraping happens before the write transaction opens; every row (item,
  genre/actor links, seasons, episodes) is then written in one transaction.
- For series, an unavailable episode guide is logged at WARNING and the item
  is committed with zero seasons.

Re-sync
-------
- Movies → `UnsupportedOperation`; unknown ids → `NotFound`.
- Guide URL: explicit argument, else the cached one, else slug-derived. The
  URL in use is cached on the item.
- The guide is fetched and parsed first; any failure propagates and the
  existing tree is untouched.
- In one transaction (item row locked `FOR UPDATE`): snapshot watched
  (season, episode) keys, delete episodes then seasons, re-insert the parsed
  tree with `is_watched = key in snapshot`. Keys that vanished upstream lose
  their flag.

Usage
-----
    engine = ReconciliationEngine(async_session_maker, http=client, catalog=catalog)
    media_id = await engine.ingest(primary_url="https://www.imdb.com/title/tt0903747/")
    report = await engine.resync_episodes(media_id)
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

import httpx
from loguru import logger
from sqlalchemy import Table, delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import noload

from app.core.exceptions import (
    Conflict,
    EpisodeGuideUnavailable,
    NotFound,
    UnsupportedOperation,
)
from app.db.models import Actor, Episode, Genre, MediaItem, Season, media_actors, media_genres
from app.db.session import transactional_async_session
from app.schemas.enums import IngestStage, MediaKind
from app.services.catalog_client import CatalogClient
from app.services.episode_guide import EpisodeGuide, fetch_episode_guide, guide_url_for
from app.services.identifier_resolver import resolve_identifier
from app.services.primary_metadata import PrimaryMetadata, extract_primary_metadata

EpisodeKey = Tuple[int, int]


@dataclass
class ResyncReport:
    media_id: int
    guide_url: str
    seasons: int
    episodes: int
    watched_restored: int
    watched_dropped: int


class ReconciliationEngine:
    """Ingest new items and re-sync episode trees, one transaction each."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        *,
        http: httpx.AsyncClient,
        catalog: Optional[CatalogClient] = None,
    ) -> None:
        self._session_factory = session_factory
        self._http = http
        self._catalog = catalog

    # ─────────────────────────────────────────────────────────────
    # ➕ Initial ingest
    # ─────────────────────────────────────────────────────────────
    async def ingest(
        self,
        *,
        primary_url: Optional[str] = None,
        catalog_id: Optional[int] = None,
        kind: Optional[MediaKind] = None,
    ) -> int:
        """Ingest one item and return its new internal id.

        Raises `Conflict` (carrying the existing id) when the external id is
        already in the library; any other failure leaves no rows behind.
        """
        stage = IngestStage.RESOLVING
        external_id: Optional[str] = None
        try:
            _log_stage(stage)
            external_id = await resolve_identifier(
                primary_url=primary_url,
                catalog_id=catalog_id,
                kind=kind,
                catalog=self._catalog,
            )
            async with self._session_factory() as db:
                existing_id = await _existing_id(db, external_id)
            if existing_id is not None:
                raise Conflict(existing_id, external_id=external_id)

            stage = IngestStage.EXTRACTING_PRIMARY
            _log_stage(stage, external_id)
            meta = await extract_primary_metadata(external_id, client=self._http)

            guide: Optional[EpisodeGuide] = None
            if meta.kind is MediaKind.SERIES:
                stage = IngestStage.EXTRACTING_EPISODES
                _log_stage(stage, external_id)
                guide = await self._try_fetch_guide(meta)

            stage = IngestStage.COMMITTING
            _log_stage(stage, external_id)
            media_id = await self._commit_new(meta, guide)
        except Conflict:
            logger.bind(external_id=external_id).info("Ingest skipped: already in library")
            raise
        except Exception as exc:
            logger.bind(stage=IngestStage.FAILED.value, external_id=external_id).warning(
                "Ingest failed during {}: {}", stage.value, exc
            )
            raise

        logger.bind(stage=IngestStage.DONE.value, external_id=external_id, media_id=media_id).info(
            "Ingested {} '{}' ({} seasons)",
            meta.kind.value,
            meta.title,
            len(guide.seasons) if guide else 0,
        )
        return media_id

    async def _try_fetch_guide(self, meta: PrimaryMetadata) -> Optional[EpisodeGuide]:
        url = guide_url_for(meta.title)
        try:
            return await fetch_episode_guide(url, client=self._http)
        except EpisodeGuideUnavailable as exc:
            logger.bind(external_id=meta.external_id).warning(
                "Episode guide unavailable at {}; committing without seasons ({})", url, exc.message
            )
            return None

    async def _commit_new(self, meta: PrimaryMetadata, guide: Optional[EpisodeGuide]) -> int:
        try:
            async with transactional_async_session(self._session_factory) as db:
                existing_id = await _existing_id(db, meta.external_id)
                if existing_id is not None:
                    raise Conflict(existing_id, external_id=meta.external_id)

                item = MediaItem(
                    external_id=meta.external_id,
                    title=meta.title,
                    kind=meta.kind,
                    year=meta.year,
                    description=meta.description,
                    poster_url=meta.poster_url,
                    rating=meta.rating,
                    episode_guide_url=guide.url if guide else None,
                )
                db.add(item)
                await db.flush()

                await _link_names(db, Genre, media_genres, "genre_id", item.id, meta.genres)
                await _link_names(db, Actor, media_actors, "actor_id", item.id, meta.actors)
                if guide is not None:
                    await _persist_guide(db, item.id, guide)
                media_id = item.id
        except IntegrityError:
            async with self._session_factory() as db:
                winner = await _existing_id(db, meta.external_id)
            if winner is None:
                raise
            raise Conflict(winner, external_id=meta.external_id)
        return media_id

    # ─────────────────────────────────────────────────────────────
    # 🔁 Re-sync
    # ─────────────────────────────────────────────────────────────
    async def resync_episodes(self, media_id: int, guide_url: Optional[str] = None) -> ResyncReport:
        """Replace the episode tree of a series, keeping watched flags by key."""
        async with self._session_factory() as db:
            item = await db.get(MediaItem, media_id, options=[noload("*")])
            if item is None:
                raise NotFound("Media not found", details={"media_id": media_id})
            if item.kind is not MediaKind.SERIES:
                raise UnsupportedOperation("Episode re-sync applies to series only")
            url = guide_url or item.episode_guide_url or guide_url_for(item.title)

        guide = await fetch_episode_guide(url, client=self._http)

        async with transactional_async_session(self._session_factory) as db:
            item = (
                await db.execute(
                    select(MediaItem)
                    .options(noload("*"))
                    .where(MediaItem.id == media_id)
                    .with_for_update()
                )
            ).scalar_one_or_none()
            if item is None:
                raise NotFound("Media not found", details={"media_id": media_id})
            item.episode_guide_url = url

            watched_episodes: Set[EpisodeKey] = {
                (s, e)
                for s, e in (
                    await db.execute(
                        select(Season.season_number, Episode.episode_number)
                        .join(Episode, Episode.season_id == Season.id)
                        .where(Season.media_id == media_id, Episode.is_watched.is_(True))
                    )
                ).all()
            }
            watched_seasons: Set[int] = set(
                await db.scalars(
                    select(Season.season_number).where(
                        Season.media_id == media_id, Season.is_watched.is_(True)
                    )
                )
            )

            season_ids = select(Season.id).where(Season.media_id == media_id)
            await db.execute(
                delete(Episode)
                .where(Episode.season_id.in_(season_ids))
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                delete(Season)
                .where(Season.media_id == media_id)
                .execution_options(synchronize_session=False)
            )

            restored = await _persist_guide(db, media_id, guide, watched_episodes, watched_seasons)

        report = ResyncReport(
            media_id=media_id,
            guide_url=url,
            seasons=len(guide.seasons),
            episodes=guide.episode_count,
            watched_restored=restored,
            watched_dropped=len(watched_episodes - guide.keys()),
        )
        logger.bind(media_id=media_id).info(
            "Re-synced {} episodes in {} seasons (watched restored={}, dropped={})",
            report.episodes,
            report.seasons,
            report.watched_restored,
            report.watched_dropped,
        )
        return report


# ─────────────────────────────────────────────────────────────
# 🧰 Persistence helpers (run inside the caller's transaction)
# ─────────────────────────────────────────────────────────────
def _log_stage(stage: IngestStage, external_id: Optional[str] = None) -> None:
    logger.bind(stage=stage.value, external_id=external_id).info("Ingest stage → {}", stage.value)


async def _existing_id(db: AsyncSession, external_id: str) -> Optional[int]:
    return await db.scalar(select(MediaItem.id).where(MediaItem.external_id == external_id))


async def _find_id(db: AsyncSession, model, name: str) -> Optional[int]:
    return await db.scalar(select(model.id).where(model.name == name))


async def _get_or_create(db: AsyncSession, model, name: str) -> int:
    """Id of the lookup row named exactly *name*, inserting it when absent.

    The insert runs in a savepoint: when a concurrent ingest commits the same
    name first, the unique key rejects ours and the winner's row is used.
    """
    row_id = await _find_id(db, model, name)
    if row_id is not None:
        return row_id
    try:
        async with db.begin_nested():
            row = model(name=name)
            db.add(row)
            await db.flush()
        return row.id
    except IntegrityError:
        row_id = await _find_id(db, model, name)
        if row_id is None:
            raise
        logger.bind(stage=IngestStage.COMMITTING.value).debug(
            "{} '{}' inserted concurrently; reusing it", model.__name__, name
        )
        return row_id


async def _link_names(
    db: AsyncSession,
    model,
    link_table: Table,
    fk_column: str,
    media_id: int,
    names: Iterable[str],
) -> None:
    max_len = model.__table__.c.name.type.length
    linked: Set[int] = set()
    rows: List[Dict[str, int]] = []
    for name in names:
        if len(name) > max_len:
            logger.bind(media_id=media_id).warning(
                "{} name truncated to {} characters: '{}'", model.__name__, max_len, name
            )
            name = name[:max_len]
        row_id = await _get_or_create(db, model, name)
        if row_id in linked:
            continue
        linked.add(row_id)
        rows.append({"media_id": media_id, fk_column: row_id})
    if rows:
        await db.execute(insert(link_table), rows)


async def _persist_guide(
    db: AsyncSession,
    media_id: int,
    guide: EpisodeGuide,
    watched_episodes: Optional[Set[EpisodeKey]] = None,
    watched_seasons: Optional[Set[int]] = None,
) -> int:
    """Insert the parsed tree under *media_id*; returns how many episodes came back watched."""
    watched_episodes = watched_episodes or set()
    watched_seasons = watched_seasons or set()
    season_ids: Dict[int, int] = {}
    restored = 0

    for number, parsed in guide.seasons.items():
        if number not in season_ids:
            season = Season(
                media_id=media_id,
                season_number=number,
                year=parsed.year,
                is_watched=number in watched_seasons,
            )
            db.add(season)
            await db.flush()
            season_ids[number] = season.id

        for ep in parsed.episodes:
            watched = (number, ep.episode_number) in watched_episodes
            restored += int(watched)
            db.add(
                Episode(
                    season_id=season_ids[number],
                    episode_number=ep.episode_number,
                    title=ep.title,
                    air_date=ep.air_date,
                    is_watched=watched,
                )
            )
    await db.flush()
    return restored


__all__ = ["ReconciliationEngine", "ResyncReport"]

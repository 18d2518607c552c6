from __future__ import annotations

"""Library repository.

Read models for the dashboard (detail, grouped-by-genre, title set used by
discovery exclusion) plus the flag-only writers: watched toggles and delete.
Structural writes to seasons and episodes belong to the reconciliation engine.

Functions never commit; the calling route owns the transaction.
"""

from datetime import date
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import noload

from app.core.exceptions import NotFound
from app.db.models import Episode, Genre, MediaItem, Season, media_genres

NEW_RELEASES_GROUP = "New Releases"
NEW_RELEASE_YEARS = 2


_ITEM_ORDER = (MediaItem.year.desc().nulls_last(), MediaItem.title)


async def get_media_detail(db: AsyncSession, media_id: int) -> MediaItem:
    """Item with genres, actors and seasons → episodes eagerly loaded."""
    item = await db.get(MediaItem, media_id, populate_existing=True)
    if item is None:
        raise NotFound("Media not found", details={"media_id": media_id})
    return item


async def library_title_keys(db: AsyncSession) -> Set[str]:
    """Lower-cased titles of every library item."""
    titles = await db.scalars(select(MediaItem.title))
    return {t.lower() for t in titles}


async def grouped_by_genre(
    db: AsyncSession, *, today: Optional[date] = None
) -> List[Tuple[str, List[MediaItem]]]:
    """Dashboard rows: "New Releases" first, then one group per genre (by name).

    Items inside a group are ordered by year (newest first), then title.
    """
    today = today or date.today()
    groups: List[Tuple[str, List[MediaItem]]] = []

    recent = list(
        await db.scalars(
            select(MediaItem)
            .options(noload("*"))
            .where(MediaItem.year >= today.year - NEW_RELEASE_YEARS)
            .order_by(*_ITEM_ORDER)
        )
    )
    if recent:
        groups.append((NEW_RELEASES_GROUP, recent))

    rows = await db.execute(
        select(Genre.name, MediaItem)
        .options(noload("*"))
        .join(media_genres, media_genres.c.genre_id == Genre.id)
        .join(MediaItem, MediaItem.id == media_genres.c.media_id)
        .order_by(Genre.name, *_ITEM_ORDER)
    )
    by_genre: Dict[str, List[MediaItem]] = {}
    for genre_name, item in rows.all():
        by_genre.setdefault(genre_name, []).append(item)
    groups.extend(by_genre.items())
    return groups


# ─────────────────────────────────────────────────────────────
# ✔️ Watched toggles (flags only)
# ─────────────────────────────────────────────────────────────
async def set_media_watched(db: AsyncSession, media_id: int, is_watched: bool) -> None:
    result = await db.execute(
        update(MediaItem).where(MediaItem.id == media_id).values(is_watched=is_watched)
    )
    if result.rowcount == 0:
        raise NotFound("Media not found", details={"media_id": media_id})


async def set_season_watched(db: AsyncSession, season_id: int, is_watched: bool) -> None:
    """Flip a season and every episode in it."""
    result = await db.execute(
        update(Season).where(Season.id == season_id).values(is_watched=is_watched)
    )
    if result.rowcount == 0:
        raise NotFound("Season not found", details={"season_id": season_id})
    await db.execute(
        update(Episode).where(Episode.season_id == season_id).values(is_watched=is_watched)
    )


async def set_episode_watched(db: AsyncSession, episode_id: int, is_watched: bool) -> None:
    result = await db.execute(
        update(Episode).where(Episode.id == episode_id).values(is_watched=is_watched)
    )
    if result.rowcount == 0:
        raise NotFound("Episode not found", details={"episode_id": episode_id})


async def delete_media(db: AsyncSession, media_id: int) -> None:
    """Remove an item; seasons, episodes and links go with it (FK cascade)."""
    result = await db.execute(delete(MediaItem).where(MediaItem.id == media_id))
    if result.rowcount == 0:
        raise NotFound("Media not found", details={"media_id": media_id})


__all__ = [
    "NEW_RELEASES_GROUP",
    "get_media_detail",
    "library_title_keys",
    "grouped_by_genre",
    "set_media_watched",
    "set_season_watched",
    "set_episode_watched",
    "delete_media",
]

# app/api/v1/routers/media.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🎬 Reelkeeper · Library API                                              ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - POST   /media                           → Ingest by URL / catalog id  ║
# ║  - GET    /media/grouped                   → Genre rows + New Releases   ║
# ║  - GET    /media/{media_id}                → Detail with episode tree    ║
# ║  - POST   /media/{media_id}/resync-episodes → Replace episode tree       ║
# ║  - DELETE /media/{media_id}                → Remove item (cascade)       ║
# ║  - POST   /media/{media_id}/watched        → Toggle item flag            ║
# ║  - POST   /seasons/{season_id}/watched     → Toggle season + episodes    ║
# ║  - POST   /episodes/{episode_id}/watched   → Toggle episode flag         ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Errors are AppException subclasses rendered as problem+json:             ║
# ║  400 invalid input / movie re-sync, 404 unknown id, 409 already in       ║
# ║  library (`existing_id`), 503 catalog unconfigured, 500 upstream.        ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_reconciliation_engine
from app.core.exceptions import InvalidIdentifier
from app.core.limiter import rate_limit
from app.db.session import get_async_db
from app.repositories import media as media_repo
from app.schemas.media import (
    AddMediaIn,
    MediaDetailOut,
    MediaGroupOut,
    MediaSummaryOut,
    ResyncIn,
    WatchedIn,
)
from app.services.reconciliation import ReconciliationEngine

router = APIRouter(
    tags=["Library"],
    responses={
        400: {"description": "Bad Request"},
        404: {"description": "Not Found"},
        429: {"description": "Too Many Requests"},
        500: {"description": "Internal Server Error"},
    },
)


# ─────────────────────────────────────────────────────────────────────────────
# ➕ Ingest
# ─────────────────────────────────────────────────────────────────────────────
@router.post(
    "/media",
    response_model=MediaDetailOut,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Already in library"}, 503: {"description": "Catalog not configured"}},
)
@rate_limit("10/minute")
async def add_media(
    request: Request,
    payload: AddMediaIn,
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
    db: AsyncSession = Depends(get_async_db),
) -> MediaDetailOut:
    """Ingest a movie or series from a primary-source URL or a catalog id + kind."""
    if not payload.primary_url and payload.catalog_id is None:
        raise InvalidIdentifier("Either primaryUrl or catalogId and kind are required")
    media_id = await engine.ingest(
        primary_url=payload.primary_url,
        catalog_id=payload.catalog_id,
        kind=payload.kind,
    )
    item = await media_repo.get_media_detail(db, media_id)
    return MediaDetailOut.model_validate(item)


# ─────────────────────────────────────────────────────────────────────────────
# 📖 Reads
# ─────────────────────────────────────────────────────────────────────────────
@router.get("/media/grouped", response_model=List[MediaGroupOut])
async def grouped_media(db: AsyncSession = Depends(get_async_db)) -> List[MediaGroupOut]:
    groups = await media_repo.grouped_by_genre(db)
    return [
        MediaGroupOut(name=name, items=[MediaSummaryOut.model_validate(i) for i in items])
        for name, items in groups
    ]


@router.get("/media/{media_id}", response_model=MediaDetailOut)
async def get_media(
    media_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_async_db),
) -> MediaDetailOut:
    item = await media_repo.get_media_detail(db, media_id)
    return MediaDetailOut.model_validate(item)


# ─────────────────────────────────────────────────────────────────────────────
# 🔁 Re-sync / delete
# ─────────────────────────────────────────────────────────────────────────────
@router.post("/media/{media_id}/resync-episodes", status_code=status.HTTP_204_NO_CONTENT)
@rate_limit("10/minute")
async def resync_episodes(
    request: Request,
    media_id: int = Path(..., ge=1),
    payload: Optional[ResyncIn] = Body(None),
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> Response:
    """Re-fetch the episode guide and replace the tree, keeping watched flags by key."""
    await engine.resync_episodes(media_id, guide_url=payload.guide_url if payload else None)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/media/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media(
    media_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_async_db),
) -> Response:
    await media_repo.delete_media(db, media_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─────────────────────────────────────────────────────────────────────────────
# ✔️ Watched toggles
# ─────────────────────────────────────────────────────────────────────────────
@router.post("/media/{media_id}/watched", status_code=status.HTTP_204_NO_CONTENT)
async def set_media_watched(
    payload: WatchedIn,
    media_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_async_db),
) -> Response:
    await media_repo.set_media_watched(db, media_id, payload.is_watched)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/seasons/{season_id}/watched", status_code=status.HTTP_204_NO_CONTENT)
async def set_season_watched(
    payload: WatchedIn,
    season_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_async_db),
) -> Response:
    """Flip a season and every episode in it."""
    await media_repo.set_season_watched(db, season_id, payload.is_watched)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/episodes/{episode_id}/watched", status_code=status.HTTP_204_NO_CONTENT)
async def set_episode_watched(
    payload: WatchedIn,
    episode_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_async_db),
) -> Response:
    await media_repo.set_episode_watched(db, episode_id, payload.is_watched)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

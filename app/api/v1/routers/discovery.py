# app/api/v1/routers/discovery.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🧭 Reelkeeper · Discovery API                                            ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - GET /discover?filter=&page=&count=   → Aggregated catalog feed        ║
# ║  - GET /search-remote?query=            → Catalog search (capped)        ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║  - Items already in the library (title, case-insensitive) are hidden.    ║
# ║  - 503 when the catalog has no API key; 500 when any page fetch fails.   ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import settings
from app.core.dependencies import get_discovery_service
from app.core.limiter import rate_limit
from app.db.session import get_session_factory
from app.repositories.media import library_title_keys
from app.schemas.discovery import DiscoverItemOut, DiscoverPage, RemoteSearchOut
from app.schemas.enums import DiscoverFilter
from app.services.discovery_service import DiscoveryService

router = APIRouter(
    tags=["Discovery"],
    responses={
        429: {"description": "Too Many Requests"},
        500: {"description": "Upstream error"},
        503: {"description": "Catalog not configured"},
    },
)


@router.get("/discover", response_model=DiscoverPage)
@rate_limit("30/minute")
async def discover(
    request: Request,
    filter_: DiscoverFilter = Query(DiscoverFilter.TRENDING, alias="filter"),
    page: int = Query(1, ge=1, le=500),
    count: int = Query(1, ge=1, le=settings.DISCOVER_MAX_PAGES),
    service: DiscoveryService = Depends(get_discovery_service),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> DiscoverPage:
    """Fetch `count` catalog pages from `page` concurrently and merge them."""
    # Library read is closed before the catalog fan-out starts.
    async with session_factory() as db:
        library = await library_title_keys(db)
    items = await service.discover(filter_, page=page, count=count, library_titles=library)
    return DiscoverPage(
        filter=filter_,
        page=page,
        count=count,
        items=[DiscoverItemOut.model_validate(i) for i in items],
    )


@router.get("/search-remote", response_model=RemoteSearchOut)
@rate_limit("30/minute")
async def search_remote(
    request: Request,
    query: str = Query(..., min_length=1, max_length=200),
    service: DiscoveryService = Depends(get_discovery_service),
) -> RemoteSearchOut:
    items = await service.search_remote(query.strip())
    return RemoteSearchOut(query=query, items=[DiscoverItemOut.model_validate(i) for i in items])

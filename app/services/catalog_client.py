from __future__ import annotations

"""
Reelkeeper — Catalog API client (TMDB v3)
=========================================

The catalog is used for three things:

- resolving a numeric catalog id to a primary-source (IMDb) id,
- paginated feeds for the discovery screen,
- free-text remote search.

Every call requires `TMDB_API_KEY`; without it the client raises
`ServiceNotConfigured` before touching the network. Transport and decode
failures surface as `UpstreamError` (see `app.utils.http_client.fetch_json`).
"""

from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import ServiceNotConfigured
from app.schemas.enums import MediaKind
from app.utils.http_client import fetch_json


class CatalogClient:
    """Thin async wrapper over the TMDB endpoints the dashboard needs."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        image_base_url: Optional[str] = None,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._base_url = (base_url or settings.TMDB_BASE_URL).rstrip("/")
        self._image_base_url = (image_base_url or settings.TMDB_IMAGE_BASE_URL).rstrip("/")

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient) -> "CatalogClient":
        key = settings.TMDB_API_KEY.get_secret_value() if settings.TMDB_API_KEY else None
        return cls(client, api_key=key)

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ServiceNotConfigured()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET a catalog path (leading slash) with the API key attached."""
        self.ensure_configured()
        query: Dict[str, Any] = {"language": "en-US", **(params or {}), "api_key": self._api_key}
        return await fetch_json(self._client, f"{self._base_url}{path}", params=query)

    # ── Identifier lookup ─────────────────────────────────────────────
    async def primary_id_for(self, catalog_id: int, kind: MediaKind) -> Optional[str]:
        """Return the IMDb id the catalog knows for *catalog_id*, if any."""
        data = await self.get(f"/{kind.catalog_type}/{catalog_id}/external_ids")
        imdb_id = data.get("imdb_id")
        return imdb_id.strip() if isinstance(imdb_id, str) and imdb_id.strip() else None

    # ── Feeds / search ────────────────────────────────────────────────
    async def list_page(self, path: str, params: Dict[str, Any], page: int) -> List[Dict[str, Any]]:
        """Fetch one page of a list endpoint and return its `results`."""
        data = await self.get(path, {**params, "page": page})
        results = data.get("results") or []
        return [r for r in results if isinstance(r, dict)]

    async def search_multi(self, query: str) -> List[Dict[str, Any]]:
        data = await self.get("/search/multi", {"query": query, "include_adult": "false", "page": 1})
        results = data.get("results") or []
        return [r for r in results if isinstance(r, dict)]

    def poster_url(self, poster_path: Optional[str]) -> Optional[str]:
        if not poster_path:
            return None
        return f"{self._image_base_url}/{poster_path.lstrip('/')}"


__all__ = ["CatalogClient"]

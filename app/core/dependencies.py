# app/core/dependencies.py
from __future__ import annotations

"""
Request dependencies — Reelkeeper
=================================

Wires the pipeline collaborators per request:

- one `httpx.AsyncClient` (browser headers, shared by scraping and catalog
  calls) closed when the request finishes;
- a `CatalogClient` bound to it (unconfigured when `TMDB_API_KEY` is unset);
- the `ReconciliationEngine` over the session factory;
- the `DiscoveryService`.

Tests override these with `app.dependency_overrides` to inject fakes or an
`httpx.MockTransport`-backed client.
"""

from typing import AsyncGenerator

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.db.session import get_session_factory
from app.services.catalog_client import CatalogClient
from app.services.discovery_service import DiscoveryService
from app.services.reconciliation import ReconciliationEngine
from app.utils.http_client import build_http_client

__all__ = [
    "get_http_client",
    "get_catalog_client",
    "get_reconciliation_engine",
    "get_discovery_service",
]


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with build_http_client() as client:
        yield client


def get_catalog_client(client: httpx.AsyncClient = Depends(get_http_client)) -> CatalogClient:
    return CatalogClient.from_settings(client)


def get_reconciliation_engine(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    client: httpx.AsyncClient = Depends(get_http_client),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> ReconciliationEngine:
    return ReconciliationEngine(session_factory, http=client, catalog=catalog)


def get_discovery_service(catalog: CatalogClient = Depends(get_catalog_client)) -> DiscoveryService:
    return DiscoveryService(catalog)

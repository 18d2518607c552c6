# tests/fixtures/app.py
"""
App fixtures:
- builds the real app via `create_app()`
- DB dependencies point at the test engine (fresh session per request)
- outbound HTTP goes through `FakeWeb`; the catalog gets a test key
"""

from __future__ import annotations

from typing import AsyncGenerator

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_catalog_client, get_http_client
from app.db.session import get_async_db, get_session_factory
from app.main import create_app
from app.services.catalog_client import CatalogClient
from tests.fixtures.db import SessionFactory

__all__ = ["app", "async_client", "CATALOG_TEST_KEY"]

CATALOG_TEST_KEY = "test-key"


@pytest.fixture()
def app(database, http_client: httpx.AsyncClient) -> FastAPI:
    application = create_app()

    async def _db() -> AsyncGenerator[AsyncSession, None]:
        async with SessionFactory() as session:
            yield session

    async def _http() -> AsyncGenerator[httpx.AsyncClient, None]:
        yield http_client

    application.dependency_overrides[get_async_db] = _db
    application.dependency_overrides[get_session_factory] = lambda: SessionFactory
    application.dependency_overrides[get_http_client] = _http
    application.dependency_overrides[get_catalog_client] = lambda: CatalogClient(
        http_client, api_key=CATALOG_TEST_KEY
    )
    return application


@pytest.fixture()
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

from __future__ import annotations

"""
Reelkeeper — Outbound HTTP helpers (httpx, async)
=================================================

One `httpx.AsyncClient` per inbound request, carrying browser-like headers
(the primary source refuses non-browser clients) and a fixed language
preference. No retries: a failed call surfaces as `UpstreamError` and the
caller decides whether that is fatal.

Usage
-----
    async with build_http_client() as client:
        html = await fetch_text(client, "https://www.imdb.com/title/tt0903747/")
"""

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from app.core.config import settings
from app.core.exceptions import UpstreamError


def build_http_client(
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.AsyncClient:
    """Create the async client used for scraping and catalog calls."""
    return httpx.AsyncClient(
        headers=headers or settings.scrape_headers,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        follow_redirects=True,
        transport=transport,
    )


async def fetch_text(client: httpx.AsyncClient, url: str, *, error_cls: type[UpstreamError] = UpstreamError) -> str:
    """GET *url* and return the decoded body; non-2xx and transport errors raise *error_cls*."""
    try:
        resp = await client.get(url)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.warning("GET {} → HTTP {}", url, exc.response.status_code)
        raise error_cls(
            f"Upstream returned HTTP {exc.response.status_code}",
            details={"url": url, "status": exc.response.status_code},
        ) from exc
    except httpx.HTTPError as exc:
        logger.warning("GET {} failed: {}", url, exc)
        raise error_cls("Upstream request failed", details={"url": url}) from exc
    return resp.text


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """GET *url* and decode a JSON object; any transport or decode failure → `UpstreamError`."""
    try:
        resp = await client.get(url, params=params, headers={"Accept": "application/json"})
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as exc:
        logger.warning("GET {} → HTTP {}", url, exc.response.status_code)
        raise UpstreamError(
            f"Upstream returned HTTP {exc.response.status_code}",
            details={"status": exc.response.status_code},
        ) from exc
    except httpx.HTTPError as exc:
        logger.warning("GET {} failed: {}", url, exc)
        raise UpstreamError("Upstream request failed") from exc
    except ValueError as exc:
        raise UpstreamError("Upstream returned malformed JSON") from exc
    if not isinstance(data, dict):
        raise UpstreamError("Upstream returned an unexpected payload")
    return data


__all__ = ["build_http_client", "fetch_text", "fetch_json"]

from __future__ import annotations

"""
Reelkeeper — Identifier resolution
==================================

Turns what the user typed into the canonical primary-source id:

- a primary-source URL → the alphanumeric token after `/title/`
  (`https://www.imdb.com/title/tt0903747/?ref_=fn` → `tt0903747`);
- a `(catalog id, kind)` pair → the catalog's external-id lookup.

No side effects; nothing is persisted here.
"""

import re
from typing import Optional

from loguru import logger

from app.core.exceptions import InvalidIdentifier, NotFound, UpstreamUnavailable
from app.schemas.enums import MediaKind
from app.services.catalog_client import CatalogClient

_PRIMARY_ID_RE = re.compile(r"/title/([A-Za-z0-9]+)")


def parse_primary_url(url: str) -> str:
    """Extract the canonical id from a primary-source URL or raise `InvalidIdentifier`."""
    match = _PRIMARY_ID_RE.search(url or "")
    if not match:
        raise InvalidIdentifier("Invalid primary-source URL", details={"url": url})
    return match.group(1)


async def resolve_identifier(
    *,
    primary_url: Optional[str] = None,
    catalog_id: Optional[int] = None,
    kind: Optional[MediaKind] = None,
    catalog: Optional[CatalogClient] = None,
) -> str:
    """Resolve a canonical primary-source id.

    A URL takes precedence over a catalog id when both are supplied.

    Raises
    ------
    InvalidIdentifier
        Neither input is usable, or the URL does not match.
    UpstreamUnavailable
        A catalog id was given but the catalog has no credentials.
    NotFound
        The catalog knows no primary-source id for this entry.
    UpstreamError
        Transport or decode failure of the catalog call.
    """
    if primary_url:
        return parse_primary_url(primary_url)

    if catalog_id is None or kind is None:
        raise InvalidIdentifier("Either primaryUrl or catalogId and kind are required")

    if catalog is None or not catalog.configured:
        raise UpstreamUnavailable("Catalog lookup is not configured")

    external_id = await catalog.primary_id_for(catalog_id, kind)
    if not external_id:
        raise NotFound(
            "No primary-source id is known for this catalog entry",
            details={"catalog_id": catalog_id, "kind": kind.value},
        )
    logger.debug("Resolved catalog {} {} → {}", kind.value, catalog_id, external_id)
    return external_id


__all__ = ["parse_primary_url", "resolve_identifier"]

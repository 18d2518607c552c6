from __future__ import annotations

"""
Reelkeeper — Primary metadata extractor (IMDb title pages)
==========================================================

Fetches `<IMDB_BASE_URL>/title/<id>/` with browser-like headers and turns the
HTML into a flat `PrimaryMetadata` record. Parsing is pure and separated from
the fetch so it can be exercised against stored documents.

Extraction order
----------------
1. title: `hero__pageTitle`, else `<title>` text before the first "(".
2. year: first release-info anchor, `int()` or None.
3. description / poster: direct lookups, None when absent.
4. rating: free text normalized by `normalize_rating` (literal heuristic).
5. genres / actors: ordered text lists, duplicates kept.
6. kind: SERIES iff any link target contains "episodes".

No title by any route → `ExtractionFailed`.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from app.core.config import settings
from app.core.exceptions import ExtractionFailed
from app.schemas.enums import MediaKind
from app.utils.http_client import fetch_text

_TITLE_FALLBACK_RE = re.compile(r"^([^(]*)\(")
# Width of `media_items.rating`.
RATING_MAX_LENGTH = 10


@dataclass
class PrimaryMetadata:
    external_id: str
    title: str
    kind: MediaKind
    year: Optional[int] = None
    description: Optional[str] = None
    poster_url: Optional[str] = None
    rating: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    actors: List[str] = field(default_factory=list)


# ─────────────────────────────────────────────────────────────
# 🧮 Small text helpers
# ─────────────────────────────────────────────────────────────
def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    collapsed = " ".join(text.split())
    return collapsed or None


def normalize_rating(raw: Optional[str]) -> Optional[str]:
    """Normalize the aggregate-rating text.

    More than two dot-separated segments → first three characters; otherwise
    the part before the first "/", cut to `RATING_MAX_LENGTH`.
    `"8.7/10"` → `"8.7"`, `"8.7.1"` → `"8.7"`.
    """
    text = _clean(raw)
    if not text:
        return None
    if len(text.split(".")) > 2:
        return text[:3]
    return text.split("/")[0].strip()[:RATING_MAX_LENGTH] or None


def classify_kind(soup: BeautifulSoup) -> MediaKind:
    for anchor in soup.find_all("a", href=True):
        if "episodes" in anchor["href"]:
            return MediaKind.SERIES
    return MediaKind.MOVIE


def _extract_title(soup: BeautifulSoup) -> Optional[str]:
    node = soup.select_one('[data-testid="hero__pageTitle"]')
    if node is not None:
        title = _clean(node.get_text())
        if title:
            return title
    if soup.title is not None and soup.title.string:
        match = _TITLE_FALLBACK_RE.match(soup.title.string.strip())
        if match:
            return _clean(match.group(1))
    return None


def _extract_year(soup: BeautifulSoup) -> Optional[int]:
    node = soup.select_one('a[href*="releaseinfo"]')
    if node is None:
        return None
    try:
        return int(node.get_text(strip=True))
    except ValueError:
        return None


def _text_list(soup: BeautifulSoup, selector: str) -> List[str]:
    names = (_clean(n.get_text()) for n in soup.select(selector))
    return [n for n in names if n]


# ─────────────────────────────────────────────────────────────
# 🔍 Public API
# ─────────────────────────────────────────────────────────────
def parse_primary_document(html: str, external_id: str) -> PrimaryMetadata:
    """Parse a primary-source title page into `PrimaryMetadata`."""
    soup = BeautifulSoup(html, "html.parser")

    title = _extract_title(soup)
    if not title:
        raise ExtractionFailed(details={"external_id": external_id})

    plot = soup.select_one('[data-testid="plot-xl"]')
    poster = soup.select_one('[data-testid="hero-media__poster"] img')
    rating = soup.select_one('[data-testid="hero-rating-bar__aggregate-rating__score"]')

    return PrimaryMetadata(
        external_id=external_id,
        title=title,
        kind=classify_kind(soup),
        year=_extract_year(soup),
        description=_clean(plot.get_text()) if plot is not None else None,
        poster_url=(poster.get("src") or None) if poster is not None else None,
        rating=normalize_rating(rating.get_text()) if rating is not None else None,
        genres=_text_list(soup, '[data-testid="genres"] .ipc-chip__text'),
        actors=_text_list(soup, 'a[data-testid="title-cast-item__actor"]'),
    )


def primary_url(external_id: str) -> str:
    return f"{settings.IMDB_BASE_URL.rstrip('/')}/title/{external_id}/"


async def extract_primary_metadata(external_id: str, *, client: httpx.AsyncClient) -> PrimaryMetadata:
    """Fetch and parse the primary-source page for *external_id*.

    Raises `UpstreamError` on transport failures and `ExtractionFailed` when
    the document has no title.
    """
    html = await fetch_text(client, primary_url(external_id))
    meta = parse_primary_document(html, external_id)
    logger.debug(
        "Extracted {} '{}' ({}): {} genres, {} actors",
        meta.kind.value,
        meta.title,
        meta.year,
        len(meta.genres),
        len(meta.actors),
    )
    return meta


__all__ = [
    "PrimaryMetadata",
    "normalize_rating",
    "classify_kind",
    "parse_primary_document",
    "primary_url",
    "extract_primary_metadata",
]

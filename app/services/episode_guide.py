from __future__ import annotations

"""
Reelkeeper — Episode guide locator & parser (epguides)
======================================================

Series only. The guide lives at `<EPGUIDES_BASE_URL>/<slug>/`, where the slug
is derived from the primary title:

    "Breaking Bad (TV Series 2008–2013)"  → "BreakingBad"
    "The Office (US)"                     → "TheOffice"

The page is one long table. Header rows (`td.bold[colspan="4"]`) move a
running season counter ("Season N" → N, "Specials" → 0); four-cell data rows
under an active counter become episodes. Column 2 is tried against the
specials pattern (`S<season>. …-<ep>`) first, then the regular
`<season>-<ep>` pattern, which must agree with a non-zero counter.

Parsing is a single left-to-right pass that builds an ordered
season-number → season map; the first reference to a number creates the
season. Nothing here touches the database.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Set, Tuple

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from app.core.config import settings
from app.core.exceptions import EpisodeGuideUnavailable
from app.utils.http_client import fetch_text

# ─────────────────────────────────────────────────────────────
# Patterns
# ─────────────────────────────────────────────────────────────
_TV_SUFFIX_RE = re.compile(r"\s*\(TV (?:Mini[ -])?Series \d{4}(?:\s*[–—-]\s*(?:\d{4})?)?\s*\)\s*$")
_US_SUFFIX_RE = re.compile(r"\s*\(US\)\s*$")
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")

_SEASON_HEADER_RE = re.compile(r"Season (\d+)")
_SPECIALS_HEADER_RE = re.compile(r"Specials")
_SPECIAL_ROW_RE = re.compile(r"S(\d+)\..*-(\d+)")
_REGULAR_ROW_RE = re.compile(r"(\d+)-(\d+)")

_MONTHS = {
    "Jan": 1, "Feb": 2, "Mar": 3, "Apr": 4, "May": 5, "Jun": 6,
    "Jul": 7, "Aug": 8, "Sep": 9, "Oct": 10, "Nov": 11, "Dec": 12,
}


@dataclass
class ParsedEpisode:
    episode_number: int
    title: Optional[str] = None
    air_date: Optional[date] = None


@dataclass
class ParsedSeason:
    season_number: int
    year: Optional[int] = None
    episodes: List[ParsedEpisode] = field(default_factory=list)


@dataclass
class EpisodeGuide:
    url: str
    seasons: Dict[int, ParsedSeason] = field(default_factory=dict)

    @property
    def episode_count(self) -> int:
        return sum(len(s.episodes) for s in self.seasons.values())

    def keys(self) -> Set[Tuple[int, int]]:
        """All (season number, episode number) pairs in the guide."""
        return {
            (s.season_number, e.episode_number)
            for s in self.seasons.values()
            for e in s.episodes
        }


# ─────────────────────────────────────────────────────────────
# 🔗 Locator
# ─────────────────────────────────────────────────────────────
def derive_slug(title: str) -> str:
    stripped = _TV_SUFFIX_RE.sub("", title)
    stripped = _US_SUFFIX_RE.sub("", stripped)
    return _NON_ALNUM_RE.sub("", stripped)


def guide_url_for(title: str) -> str:
    return f"{settings.EPGUIDES_BASE_URL.rstrip('/')}/{derive_slug(title)}/"


# ─────────────────────────────────────────────────────────────
# 🧾 Parser
# ─────────────────────────────────────────────────────────────
def parse_air_date(text: Optional[str]) -> Optional[date]:
    """Parse "D Mon YY" (two-digit years are 20YY). Anything else → None."""
    tokens = (text or "").split()
    if len(tokens) != 3:
        return None
    day, month, year = tokens
    try:
        month_num = _MONTHS[month[:3].title()]
        year_num = int(year)
        if year_num < 100:
            year_num += 2000
        return date(year_num, month_num, int(day))
    except (KeyError, ValueError):
        return None


def _header_season(row) -> Optional[int]:
    """Season number a header row switches to, or None if *row* is not a header."""
    cell = row.select_one('td.bold[colspan="4"]')
    if cell is None:
        return None
    text = cell.get_text(" ", strip=True)
    match = _SEASON_HEADER_RE.search(text)
    if match:
        return int(match.group(1))
    if _SPECIALS_HEADER_RE.search(text):
        return 0
    return -1


def _row_key(number_text: str, current: int) -> Optional[Tuple[int, int]]:
    special = _SPECIAL_ROW_RE.search(number_text)
    if special:
        return int(special.group(1)), int(special.group(2))
    regular = _REGULAR_ROW_RE.search(number_text)
    if not regular:
        return None
    season_number = int(regular.group(1))
    if current != 0 and season_number != current:
        return None
    return season_number, int(regular.group(2))


def parse_episode_guide(html: str, url: str = "") -> EpisodeGuide:
    """Parse an episode-guide document into an ordered season → episode tree."""
    soup = BeautifulSoup(html, "html.parser")
    guide = EpisodeGuide(url=url)
    current: Optional[int] = None
    seen: Set[Tuple[int, int]] = set()

    for row in soup.find_all("tr"):
        header = _header_season(row)
        if header is not None:
            # Unrecognised headers leave the counter where it was.
            if header >= 0:
                current = header
            continue
        if current is None:
            continue

        cells = row.find_all("td")
        if len(cells) != 4:
            continue
        key = _row_key(cells[1].get_text(" ", strip=True), current)
        if key is None or key in seen:
            continue
        seen.add(key)

        season_number, episode_number = key
        anchor = cells[3].find("a")
        title = (anchor or cells[3]).get_text(" ", strip=True) or None
        air_date = parse_air_date(cells[2].get_text(" ", strip=True))

        season = guide.seasons.get(season_number)
        if season is None:
            season = guide.seasons[season_number] = ParsedSeason(season_number=season_number)
        if season.year is None and air_date is not None:
            season.year = air_date.year
        season.episodes.append(ParsedEpisode(episode_number, title, air_date))

    return guide


async def fetch_episode_guide(url: str, *, client: httpx.AsyncClient) -> EpisodeGuide:
    """Fetch and parse *url*; no rows or a failed fetch → `EpisodeGuideUnavailable`."""
    html = await fetch_text(client, url, error_cls=EpisodeGuideUnavailable)
    guide = parse_episode_guide(html, url)
    if not guide.seasons:
        raise EpisodeGuideUnavailable("Episode guide has no parseable rows", details={"url": url})
    logger.debug("Parsed {} seasons / {} episodes from {}", len(guide.seasons), guide.episode_count, url)
    return guide


__all__ = [
    "ParsedEpisode",
    "ParsedSeason",
    "EpisodeGuide",
    "derive_slug",
    "guide_url_for",
    "parse_air_date",
    "parse_episode_guide",
    "fetch_episode_guide",
]

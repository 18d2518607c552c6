# app/core/config.py
from __future__ import annotations

"""
# Reelkeeper — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; the catalog integration is optional so the
  dashboard still ingests from primary-source URLs without credentials.
- Robust URL normalization and CSV → list helpers.
- Scraper knobs (browser identity, language, timeouts) live here, not in code.

## Usage
    from app.core.config import settings
"""

import logging
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _normalize_url_like(v: str | None, *, require_scheme: bool = True) -> str:
    """Normalize to a string URL without trailing slash."""
    s = (v or "").strip()
    if not s:
        return ""
    if require_scheme and not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Integrations:
        - `TMDB_API_KEY` unlocks catalog lookups, discovery and remote search.
          When absent those surfaces answer 503 instead of failing at import.

    Notes:
        - Prefer the string convenience properties when composing URLs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "Reelkeeper API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Database (PostgreSQL) ─────────────────────────────────
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("postgres")
    POSTGRES_DB: str = "reelkeeper"
    DATABASE_URL_OVERRIDE: Optional[str] = None  # full DSN wins over the parts above

    # ── CORS ──────────────────────────────────────────────────
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )
    FRONTEND_ORIGINS: Optional[str] = None  # CSV

    # ── Catalog API (TMDB) ────────────────────────────────────
    TMDB_API_KEY: Optional[SecretStr] = None
    TMDB_BASE_URL: str = "https://api.themoviedb.org/3"
    TMDB_IMAGE_BASE_URL: str = "https://image.tmdb.org/t/p/w500"

    # ── Scraping (primary source + episode guide) ─────────────
    IMDB_BASE_URL: str = "https://www.imdb.com"
    EPGUIDES_BASE_URL: str = "https://epguides.com"
    SCRAPE_USER_AGENT: str = _DEFAULT_USER_AGENT
    SCRAPE_ACCEPT_LANGUAGE: str = "en-US,en;q=0.9"
    HTTP_TIMEOUT_SECONDS: float = Field(15.0, gt=0, le=120)

    # ── Discovery ─────────────────────────────────────────────
    DISCOVER_MAX_PAGES: int = Field(5, ge=1, le=20)
    SEARCH_RESULT_LIMIT: int = Field(10, ge=1, le=50)
    UPCOMING_WINDOW_DAYS: int = Field(90, ge=1, le=365)

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    @field_validator("TMDB_BASE_URL", "TMDB_IMAGE_BASE_URL", "IMDB_BASE_URL", "EPGUIDES_BASE_URL", mode="before")
    @classmethod
    def _normalize_base_urls(cls, v: str | None) -> str:
        return _normalize_url_like(v)

    @field_validator("TMDB_API_KEY", mode="before")
    @classmethod
    def _blank_key_is_none(cls, v):
        """An empty env var means "not configured", not an empty credential."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN."""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

    @property
    def catalog_configured(self) -> bool:
        return self.TMDB_API_KEY is not None

    @property
    def frontend_origins_list(self) -> List[str]:
        """
        Preferred CORS allowlist:
        Priority → FRONTEND_ORIGINS (CSV) → BACKEND_CORS_ORIGINS (typed list).
        """
        if self.FRONTEND_ORIGINS:
            return _split_csv(self.FRONTEND_ORIGINS)
        return [str(u).rstrip("/") for u in (self.BACKEND_CORS_ORIGINS or [])]

    @property
    def scrape_headers(self) -> dict[str, str]:
        """Browser-like request headers; the primary source rejects bare clients."""
        return {
            "User-Agent": self.SCRAPE_USER_AGENT,
            "Accept-Language": self.SCRAPE_ACCEPT_LANGUAGE,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }


# Singleton instance
settings = Settings()

# tests/test_core/test_config.py
from __future__ import annotations

from app.core.config import Settings


def test_blank_catalog_key_means_unconfigured(monkeypatch):
    monkeypatch.setenv("TMDB_API_KEY", "   ")
    s = Settings()
    assert s.TMDB_API_KEY is None
    assert s.catalog_configured is False


def test_catalog_key_is_secret(monkeypatch):
    monkeypatch.setenv("TMDB_API_KEY", "abc123")
    s = Settings()
    assert s.catalog_configured is True
    assert s.TMDB_API_KEY.get_secret_value() == "abc123"
    assert "abc123" not in repr(s.TMDB_API_KEY)


def test_base_urls_are_normalized(monkeypatch):
    monkeypatch.setenv("EPGUIDES_BASE_URL", "epguides.com/")
    monkeypatch.setenv("IMDB_BASE_URL", "https://www.imdb.com/")
    s = Settings()
    assert s.EPGUIDES_BASE_URL == "https://epguides.com"
    assert s.IMDB_BASE_URL == "https://www.imdb.com"


def test_database_override_and_async_dsn(monkeypatch):
    monkeypatch.setenv("DATABASE_URL_OVERRIDE", "postgresql://u:p@db:5432/reel")
    s = Settings()
    assert s.ASYNC_DATABASE_URL == "postgresql+asyncpg://u:p@db:5432/reel"


def test_scrape_headers_look_like_a_browser():
    headers = Settings().scrape_headers
    assert headers["User-Agent"].startswith("Mozilla/5.0")
    assert headers["Accept-Language"].startswith("en-US")

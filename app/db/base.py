# app/db/base.py
"""
Reelkeeper — SQLAlchemy Base registry
=====================================

Import all ORM models so their tables are registered on `Base.metadata`.
This is useful for Alembic autogeneration and ensures relationship
string references resolve at import time.

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base

# ───────────────────────────────────────────────────────────────
# Library
# ───────────────────────────────────────────────────────────────
from app.db.models.media_item import MediaItem
from app.db.models.season import Season
from app.db.models.episode import Episode

# ───────────────────────────────────────────────────────────────
# Lookups
# ───────────────────────────────────────────────────────────────
from app.db.models.genre import Genre, media_genres
from app.db.models.actor import Actor, media_actors

__all__ = [
    "Base",
    "MediaItem",
    "Season",
    "Episode",
    "Genre",
    "Actor",
    "media_genres",
    "media_actors",
]

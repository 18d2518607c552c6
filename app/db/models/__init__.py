# app/db/models/__init__.py
"""
Reelkeeper — ORM models
=======================

Importing this package registers every table on `Base.metadata`.
"""

from app.db.base_class import Base

# ───────────────────────────────────────────────────────────────
# Library: items and their episode tree
# ───────────────────────────────────────────────────────────────
from .media_item import MediaItem
from .season import Season
from .episode import Episode

# ───────────────────────────────────────────────────────────────
# Global lookups + M2M links
# ───────────────────────────────────────────────────────────────
from .genre import Genre, media_genres
from .actor import Actor, media_actors

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

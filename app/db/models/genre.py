# app/db/models/genre.py
from __future__ import annotations

"""
🍿 Reelkeeper — Genre (global lookup)
====================================

Genres are deduplicated globally by their decoded, whitespace-normalized
name. Lookups are case-sensitive exact matches: "Sci-Fi" and "sci-fi" are
two rows. Ingest inserts a genre when absent and then links it.
"""

from sqlalchemy import Column, ForeignKey, String, Table
from sqlalchemy.orm import relationship

from app.db.base_class import Base, IdType

# ── M2M association: media_items ⇄ genres ─────────────────────────────
media_genres = Table(
    "media_genres",
    Base.metadata,
    Column("media_id", IdType, ForeignKey("media_items.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", IdType, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Genre(Base):
    """Normalized genre name shared by every item that carries it."""

    __tablename__ = "genres"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    media = relationship("MediaItem", secondary=media_genres, back_populates="genres", lazy="noload")

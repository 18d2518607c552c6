# app/db/models/actor.py
from __future__ import annotations

"""
🎭 Reelkeeper — Actor (global lookup)
====================================

Cast members scraped from the primary page, keyed by exact normalized name.
"""

from sqlalchemy import Column, ForeignKey, String, Table
from sqlalchemy.orm import relationship

from app.db.base_class import Base, IdType

# ── M2M association: media_items ⇄ actors ─────────────────────────────
media_actors = Table(
    "media_actors",
    Base.metadata,
    Column("media_id", IdType, ForeignKey("media_items.id", ondelete="CASCADE"), primary_key=True),
    Column("actor_id", IdType, ForeignKey("actors.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Actor(Base):
    """Normalized actor name shared across the library."""

    __tablename__ = "actors"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)

    media = relationship("MediaItem", secondary=media_actors, back_populates="actors", lazy="noload")

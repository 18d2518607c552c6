# app/db/models/season.py
from __future__ import annotations

"""
📺 Reelkeeper — Season Model
===========================

A season of a series. Rows are owned by the reconciliation engine: created on
ingest, wholesale replaced on re-sync, removed with their MediaItem. The only
other writer is the watched toggle, which flips `is_watched` in place.

Conventions
-----------
- `season_number` 0 is the "Specials" pseudo-season; numbers are never negative.
- `(media_id, season_number)` is unique.
- `year` is the release year of the first dated episode (nullable).
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base, IdType


class Season(Base):
    """Season container for a series."""

    __tablename__ = "seasons"

    # ── Identity ────────────────────────────────────────────────
    id = Column(IdType, primary_key=True, autoincrement=True)
    media_id = Column(
        IdType,
        ForeignKey("media_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Parent MediaItem (a series).",
    )

    # ── Ordinal / dates / user state ───────────────────────────
    season_number = Column(Integer, nullable=False, doc="0 = specials, otherwise 1-based.")
    year = Column(Integer, nullable=True)
    is_watched = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    __table_args__ = (
        UniqueConstraint("media_id", "season_number", name="uq_seasons_media_num"),
        CheckConstraint("season_number >= 0", name="num_ge_0"),
    )

    # ── Relationships ──────────────────────────────────────────
    media = relationship("MediaItem", back_populates="seasons")
    episodes = relationship(
        "Episode",
        back_populates="season",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="Episode.episode_number",
    )

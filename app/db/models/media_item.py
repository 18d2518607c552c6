# app/db/models/media_item.py
from __future__ import annotations

"""
🎬 Reelkeeper — MediaItem Model
==============================

Library entry for a **movie** or a **series**, created exclusively by the
reconciliation engine from scraped primary-source metadata.

Design highlights
-----------------
• `external_id` (IMDb id) is globally unique and immutable; it is the only
  anchor that survives re-syncs.
• `kind` is a classification heuristic from the primary page, stored as a
  plain string enum so the dashboard can read it directly.
• `rating` keeps the normalized short string from the page (e.g. "8.7").
• `episode_guide_url` caches where the secondary source lives so re-syncs
  skip slug derivation.

Relationships
-------------
• `seasons` → Season (1-to-many, cascade delete, ordered by number)
• `genres`  ↔ Genre  via `media_genres`
• `actors`  ↔ Actor  via `media_actors`
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base, IdType, TimestampMixin
from app.schemas.enums import MediaKind


class MediaItem(TimestampMixin, Base):
    """A movie or series in the personal library."""

    __tablename__ = "media_items"

    # ── Identity ────────────────────────────────────────────────
    id = Column(IdType, primary_key=True, autoincrement=True)
    external_id = Column(String(32), nullable=False, unique=True, doc="Primary-source id, e.g. tt0903747.")

    # ── Core metadata ──────────────────────────────────────────
    title = Column(Text, nullable=False)
    kind = Column(
        SAEnum(
            MediaKind,
            name="media_kind",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
            length=16,
        ),
        nullable=False,
        index=True,
    )
    poster_url = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    year = Column(Integer, nullable=True, index=True)
    rating = Column(String(10), nullable=True)

    # ── User state ─────────────────────────────────────────────
    is_watched = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    # ── Secondary source cache ─────────────────────────────────
    episode_guide_url = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("length(trim(title)) > 0", name="title_not_blank"),
        Index("ix_media_items_title_lower", func.lower(title)),
    )

    # ── Relationships ──────────────────────────────────────────
    seasons = relationship(
        "Season",
        back_populates="media",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="Season.season_number",
    )
    genres = relationship(
        "Genre",
        secondary="media_genres",
        back_populates="media",
        lazy="selectin",
        order_by="Genre.name",
    )
    actors = relationship(
        "Actor",
        secondary="media_actors",
        back_populates="media",
        lazy="selectin",
        order_by="Actor.name",
    )

# app/db/models/episode.py
from __future__ import annotations

"""
🎞️ Reelkeeper — Episode Model
============================

One row of the parsed episode guide. `air_date` stays NULL when the guide's
date text is not a clean "D Mon YY" triple; no placeholder dates are stored.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base, IdType


class Episode(Base):
    """Episode scoped to exactly one Season."""

    __tablename__ = "episodes"

    id = Column(IdType, primary_key=True, autoincrement=True)
    season_id = Column(
        IdType,
        ForeignKey("seasons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    episode_number = Column(Integer, nullable=False)
    title = Column(Text, nullable=True)
    air_date = Column(Date, nullable=True)
    is_watched = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    __table_args__ = (
        UniqueConstraint("season_id", "episode_number", name="uq_episodes_season_num"),
        CheckConstraint("episode_number >= 0", name="num_ge_0"),
    )

    season = relationship("Season", back_populates="episodes")

"""
Library schema: media items, seasons, episodes, genre/actor lookups.

- media_items: unique external id, kind as a plain string enum, cached guide URL.
- seasons/episodes: owned tree, unique ordinals per parent, ON DELETE CASCADE.
- genres/actors: global lookups linked through media_genres/media_actors.
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic.
revision = "20261019_01_library_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- Items ---
    op.create_table(
        "media_items",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("external_id", sa.String(length=32), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("poster_url", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("rating", sa.String(length=10), nullable=True),
        sa.Column("is_watched", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("episode_guide_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_media_items"),
        sa.UniqueConstraint("external_id", name="uq_media_items_external_id"),
        sa.CheckConstraint("length(trim(title)) > 0", name="ck_media_items_title_not_blank"),
    )
    op.create_index("ix_media_items_kind", "media_items", ["kind"], unique=False)
    op.create_index("ix_media_items_year", "media_items", ["year"], unique=False)
    op.create_index("ix_media_items_title_lower", "media_items", [sa.text("lower(title)")], unique=False)

    # --- Episode tree ---
    op.create_table(
        "seasons",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("media_id", sa.BigInteger(), nullable=False),
        sa.Column("season_number", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("is_watched", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_seasons"),
        sa.ForeignKeyConstraint(
            ["media_id"], ["media_items.id"], name="fk_seasons_media_id_media_items", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("media_id", "season_number", name="uq_seasons_media_num"),
        sa.CheckConstraint("season_number >= 0", name="ck_seasons_num_ge_0"),
    )
    op.create_index("ix_seasons_media_id", "seasons", ["media_id"], unique=False)

    op.create_table(
        "episodes",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("season_id", sa.BigInteger(), nullable=False),
        sa.Column("episode_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("air_date", sa.Date(), nullable=True),
        sa.Column("is_watched", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_episodes"),
        sa.ForeignKeyConstraint(
            ["season_id"], ["seasons.id"], name="fk_episodes_season_id_seasons", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("season_id", "episode_number", name="uq_episodes_season_num"),
        sa.CheckConstraint("episode_number >= 0", name="ck_episodes_num_ge_0"),
    )
    op.create_index("ix_episodes_season_id", "episodes", ["season_id"], unique=False)

    # --- Lookups + links ---
    op.create_table(
        "genres",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_genres"),
        sa.UniqueConstraint("name", name="uq_genres_name"),
    )
    op.create_table(
        "actors",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_actors"),
        sa.UniqueConstraint("name", name="uq_actors_name"),
    )
    for link, lookup, fk in (("media_genres", "genres", "genre_id"), ("media_actors", "actors", "actor_id")):
        op.create_table(
            link,
            sa.Column("media_id", sa.BigInteger(), nullable=False),
            sa.Column(fk, sa.BigInteger(), nullable=False),
            sa.PrimaryKeyConstraint("media_id", fk, name=f"pk_{link}"),
            sa.ForeignKeyConstraint(
                ["media_id"], ["media_items.id"], name=f"fk_{link}_media_id_media_items", ondelete="CASCADE"
            ),
            sa.ForeignKeyConstraint([fk], [f"{lookup}.id"], name=f"fk_{link}_{fk}_{lookup}", ondelete="CASCADE"),
        )
        op.create_index(f"ix_{link}_{fk}", link, [fk], unique=False)


def downgrade() -> None:
    for link, fk in (("media_actors", "actor_id"), ("media_genres", "genre_id")):
        op.drop_index(f"ix_{link}_{fk}", table_name=link)
        op.drop_table(link)
    op.drop_table("actors")
    op.drop_table("genres")
    op.drop_index("ix_episodes_season_id", table_name="episodes")
    op.drop_table("episodes")
    op.drop_index("ix_seasons_media_id", table_name="seasons")
    op.drop_table("seasons")
    op.drop_index("ix_media_items_title_lower", table_name="media_items")
    op.drop_index("ix_media_items_year", table_name="media_items")
    op.drop_index("ix_media_items_kind", table_name="media_items")
    op.drop_table("media_items")

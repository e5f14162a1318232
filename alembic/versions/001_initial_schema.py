"""Movies corpus table.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-02-25 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "movies",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("movie_title", sa.String(), nullable=False),
        sa.Column("title_key", sa.String(), nullable=False),
        sa.Column("genres_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("imdb_rating", sa.Float(), nullable=True),
        sa.Column("overview", sa.Text(), nullable=True),
        sa.Column("director", sa.String(), nullable=True),
        sa.Column("released_year", sa.Integer(), nullable=True),
        sa.Column("poster_link", sa.String(), nullable=True),
        # Populated out-of-band by the embedding import job
        sa.Column("embedding_json", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_movies_title_key", "movies", ["title_key"])


def downgrade() -> None:
    op.drop_index("ix_movies_title_key", table_name="movies")
    op.drop_table("movies")

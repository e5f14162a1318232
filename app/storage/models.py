"""SQLAlchemy ORM models for the movie corpus."""

from typing import Optional

from sqlalchemy import Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.storage.db import Base


class Movie(Base):
    """Reference movie with an optional precomputed embedding."""

    __tablename__ = "movies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    movie_title: Mapped[str] = mapped_column(String, nullable=False)
    # movie_title.strip().lower(), computed in Python on insert
    title_key: Mapped[str] = mapped_column(String, nullable=False)
    genres_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    imdb_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    overview: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    director: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    released_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    poster_link: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Populated out-of-band by the embedding import job
    embedding_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_movies_title_key", "title_key"),
    )

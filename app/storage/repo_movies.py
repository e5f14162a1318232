"""Repository for movie corpus operations."""

from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.logging import get_logger
from app.storage.json_utils import load_vector, safe_json_dumps
from app.storage.models import Movie

logger = get_logger(__name__)

# Max suggestions returned by the title search
TITLE_SEARCH_LIMIT = 8
UPSERT_CHUNK_SIZE = 100


def title_key(title: str) -> str:
    """Lower-cased lookup key shared by inserts and queries."""
    return title.strip().lower()


class MoviesRepo:
    """Repository for reference movie operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_movies_by_ids(self, ids: list[int]) -> list[Movie]:
        """Get movies for the given IDs; unknown IDs are omitted.

        Args:
            ids: Movie IDs

        Returns:
            Matching movies in no particular order
        """
        if not ids:
            return []
        stmt = select(Movie).where(Movie.id.in_(set(ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_titles(self, titles: list[str]) -> dict[str, Movie]:
        """Case-insensitive exact title lookup.

        When several movies share a title the lowest ID wins.

        Args:
            titles: Titles as typed by the user

        Returns:
            Mapping of lower-cased title to movie
        """
        keys = {title_key(t) for t in titles if t and t.strip()}
        if not keys:
            return {}

        stmt = (
            select(Movie)
            .where(Movie.title_key.in_(keys))
            .order_by(Movie.id)
        )
        result = await self.session.execute(stmt)

        found: dict[str, Movie] = {}
        for movie in result.scalars().all():
            found.setdefault(movie.title_key, movie)
        return found

    async def search_titles(self, query: str, limit: int = TITLE_SEARCH_LIMIT) -> list[str]:
        """Case-insensitive substring search over titles.

        Args:
            query: Partial title
            limit: Maximum titles returned

        Returns:
            Matching titles ordered by title
        """
        stmt = (
            select(Movie.movie_title)
            .where(Movie.title_key.contains(title_key(query), autoescape=True))
            .order_by(Movie.movie_title)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_embedded(self) -> list[tuple[int, list[float]]]:
        """List (id, embedding) for every movie with a usable embedding."""
        stmt = (
            select(Movie.id, Movie.embedding_json)
            .where(Movie.embedding_json.is_not(None))
            .order_by(Movie.id)
        )
        result = await self.session.execute(stmt)

        entries = []
        for movie_id, embedding_json in result.all():
            vector = load_vector(embedding_json)
            if vector is not None:
                entries.append((movie_id, vector))
        return entries

    async def upsert_movies(self, rows: list[dict[str, Any]]) -> int:
        """Insert movies, ignoring IDs that already exist.

        Args:
            rows: Dicts with id, movie_title, genres (list) and optional
                  imdb_rating, overview, director, released_year, poster_link

        Returns:
            Number of rows submitted
        """
        if not rows:
            return 0

        values = [
            {
                "id": row["id"],
                "movie_title": row["movie_title"],
                "title_key": title_key(row["movie_title"]),
                "genres_json": safe_json_dumps(list(row.get("genres") or [])),
                "imdb_rating": row.get("imdb_rating"),
                "overview": row.get("overview"),
                "director": row.get("director"),
                "released_year": row.get("released_year"),
                "poster_link": row.get("poster_link"),
            }
            for row in rows
        ]

        # Chunked to stay under SQLite's bound-parameter limit
        for start in range(0, len(values), UPSERT_CHUNK_SIZE):
            chunk = values[start:start + UPSERT_CHUNK_SIZE]
            stmt = sqlite_insert(Movie).values(chunk).on_conflict_do_nothing(index_elements=["id"])
            await self.session.execute(stmt)
        await self.session.commit()

        logger.info(f"Upserted {len(values)} movies")
        return len(values)

    async def update_embeddings(self, embeddings: dict[int, list[float]]) -> int:
        """Store embeddings for existing movies.

        Args:
            embeddings: Mapping of movie ID to vector

        Returns:
            Number of movies updated
        """
        updated = 0
        for movie_id, vector in embeddings.items():
            stmt = (
                update(Movie)
                .where(Movie.id == movie_id)
                .values(embedding_json=safe_json_dumps(vector))
            )
            result = await self.session.execute(stmt)
            updated += result.rowcount or 0

        await self.session.commit()
        return updated

    async def count_movies(self, embedded_only: bool = False) -> int:
        """Count movies, optionally only those with embeddings."""
        stmt = select(func.count()).select_from(Movie)
        if embedded_only:
            stmt = stmt.where(Movie.embedding_json.is_not(None))
        result = await self.session.execute(stmt)
        return result.scalar() or 0

"""Database-backed movie catalog consumed by the recommendation core."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.contracts import ReferenceMovie
from app.storage.json_utils import load_genres
from app.storage.models import Movie
from app.storage.repo_movies import MoviesRepo


def to_reference_movie(movie: Movie) -> ReferenceMovie:
    """Convert an ORM row into an immutable ReferenceMovie."""
    return ReferenceMovie(
        id=movie.id,
        title=movie.movie_title,
        categories=load_genres(movie.genres_json),
        intrinsic_score=float(movie.imdb_rating) if movie.imdb_rating is not None else None,
        synopsis=movie.overview,
        director=movie.director,
        release_year=movie.released_year,
        poster_ref=movie.poster_link,
    )


class SqlMovieCatalog:
    """MovieCatalog reading from the movies table, one session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find_by_titles(self, titles: list[str]) -> dict[str, ReferenceMovie]:
        async with self.session_factory() as session:
            found = await MoviesRepo(session).find_by_titles(titles)
        return {key: to_reference_movie(movie) for key, movie in found.items()}

    async def get_movies(self, ids: list[int]) -> list[ReferenceMovie]:
        async with self.session_factory() as session:
            movies = await MoviesRepo(session).get_movies_by_ids(ids)
        return [to_reference_movie(movie) for movie in movies]

    async def load_embeddings(self) -> list[tuple[int, list[float]]]:
        """All (id, embedding) pairs, for building the vector index."""
        async with self.session_factory() as session:
            return await MoviesRepo(session).list_embedded()

"""Storage module for database operations."""

from app.storage.catalog import SqlMovieCatalog, to_reference_movie
from app.storage.db import Base, close_engine, get_engine, get_session_factory, init_db
from app.storage.json_utils import load_genres, load_vector, safe_json_dumps, safe_json_loads
from app.storage.models import Movie
from app.storage.repo_movies import MoviesRepo

__all__ = [
    # Database
    "Base",
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_engine",
    # JSON utilities
    "safe_json_dumps",
    "safe_json_loads",
    "load_genres",
    "load_vector",
    # Models
    "Movie",
    # Repositories
    "MoviesRepo",
    "SqlMovieCatalog",
    "to_reference_movie",
]

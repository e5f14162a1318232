"""Pytest configuration and shared fixtures."""

import os

TEST_DB_PATH = "./test_tastematch.db"

# Set test environment variables before any imports
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["GOOGLE_AI_API_KEY"] = "test-google-key"
os.environ["EMBEDDING_DIMENSIONS"] = "4"
os.environ["LLM_ENABLED"] = "false"
os.environ["ADMIN_TOKEN"] = "test-admin-token"

import pytest

from app.tests.fakes import make_movie


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture
def inception_corpus():
    """Inception plus five candidates with fixed similarities."""
    movies = [
        make_movie(1, "Inception", ("Sci-Fi", "Thriller"), 8.8, "A thief steals secrets through dreams."),
        make_movie(2, "Interstellar", ("Sci-Fi", "Drama"), 8.6, "Explorers travel through a wormhole."),
        make_movie(3, "The Prestige", ("Drama", "Mystery"), 8.5, "Rival magicians."),
        make_movie(4, "Memento", ("Mystery", "Thriller"), 8.4, "A man with short-term memory loss."),
        make_movie(5, "Paddington", ("Comedy", "Family"), 7.8, "A bear in London."),
        make_movie(6, "Arrival", ("Sci-Fi", "Drama"), 7.9, "Linguist meets aliens."),
    ]
    matches = [(1, 0.95), (2, 0.9), (3, 0.8), (4, 0.7), (5, 0.6), (6, 0.5)]
    return movies, matches


@pytest.fixture
async def database():
    """Fresh tables on the application engine, dropped afterwards."""
    from app.storage import Base, close_engine, get_engine, init_db

    await init_db()
    yield
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await close_engine()

    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

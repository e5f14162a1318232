"""Corpus seeding job: load reference movies from CSV."""

import csv
import io
import time
from dataclasses import dataclass, field
from typing import Any

from app.logging import get_logger
from app.storage import MoviesRepo, get_session_factory

logger = get_logger(__name__)

# id, poster_link, movie_title, genres, imdb_rating, overview, director, released_year
EXPECTED_COLUMNS = 8


@dataclass
class SeedStats:
    """Statistics from a seed run."""

    parsed: int = 0
    skipped: int = 0
    upserted: int = 0
    duration_seconds: float = 0.0
    errors: list[str] = field(default_factory=list)


def _optional_float(value: str) -> float | None:
    value = value.strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _optional_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_genres(raw: str) -> list[str]:
    """Split a comma-separated genres field, dropping blanks."""
    return [g.strip() for g in raw.split(",") if g.strip()]


def parse_movie_row(fields: list[str]) -> dict[str, Any] | None:
    """Convert one CSV row into a movie dict.

    Args:
        fields: Raw CSV fields

    Returns:
        Movie dict, or None when the row is unusable (short row, bad id, no title)
    """
    if len(fields) < EXPECTED_COLUMNS:
        return None

    movie_id = _optional_int(fields[0])
    title = fields[2].strip()
    if movie_id is None or not title:
        return None

    return {
        "id": movie_id,
        "poster_link": fields[1].strip() or None,
        "movie_title": title,
        "genres": parse_genres(fields[3]),
        "imdb_rating": _optional_float(fields[4]),
        "overview": fields[5].strip() or None,
        "director": fields[6].strip() or None,
        "released_year": _optional_int(fields[7]),
    }


def parse_movies_csv(text: str, stats: SeedStats | None = None) -> list[dict[str, Any]]:
    """Parse corpus CSV text; the first row is a header.

    Args:
        text: CSV document
        stats: Optional stats collector for skipped rows

    Returns:
        Parsed movie dicts in file order
    """
    rows: list[dict[str, Any]] = []
    reader = csv.reader(io.StringIO(text))

    for line_num, fields in enumerate(reader, start=1):
        if line_num == 1 or not any(f.strip() for f in fields):
            continue
        movie = parse_movie_row(fields)
        if movie is None:
            if stats is not None:
                stats.skipped += 1
                stats.errors.append(f"line {line_num}: unusable row")
            continue
        rows.append(movie)

    return rows


async def run_seed_movies(text: str) -> SeedStats:
    """Parse the CSV and insert movies not already present.

    Args:
        text: CSV document

    Returns:
        SeedStats for the run
    """
    started = time.monotonic()
    stats = SeedStats()

    rows = parse_movies_csv(text, stats)
    stats.parsed = len(rows)

    session_factory = get_session_factory()
    async with session_factory() as session:
        stats.upserted = await MoviesRepo(session).upsert_movies(rows)

    stats.duration_seconds = time.monotonic() - started
    logger.info(
        f"Seed complete: parsed={stats.parsed} skipped={stats.skipped} "
        f"in {stats.duration_seconds:.2f}s"
    )
    return stats

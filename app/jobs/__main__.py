"""Run a corpus job from the command line.

Usage::

    python -m app.jobs seed movies.csv
    python -m app.jobs embeddings embeddings.json
"""

import asyncio
import sys
from pathlib import Path

from app.config import config
from app.jobs.seed_movies import run_seed_movies
from app.jobs.update_embeddings import run_update_embeddings
from app.logging import get_logger, setup_logging
from app.storage import close_engine, init_db

setup_logging(config.log_level)
logger = get_logger(__name__)

USAGE = "usage: python -m app.jobs {seed|embeddings} <path>"


async def _run(command: str, path: Path) -> None:
    await init_db()
    try:
        if command == "seed":
            stats = await run_seed_movies(path.read_text(encoding="utf-8"))
            logger.info(f"Seeded {stats.parsed} movies ({stats.skipped} rows skipped)")
        else:
            stats = await run_update_embeddings(path.read_bytes())
            logger.info(f"Embeddings imported: {stats.to_dict()}")
    finally:
        await close_engine()


def main() -> None:
    if len(sys.argv) != 3 or sys.argv[1] not in ("seed", "embeddings"):
        print(USAGE, file=sys.stderr)
        sys.exit(2)

    path = Path(sys.argv[2])
    if not path.is_file():
        print(f"file not found: {path}", file=sys.stderr)
        sys.exit(2)

    asyncio.run(_run(sys.argv[1], path))


if __name__ == "__main__":
    main()

"""Embedding import job: attach precomputed vectors to corpus movies."""

import json
from dataclasses import dataclass
from typing import Any

from app.config import config
from app.logging import get_logger
from app.storage import MoviesRepo, get_session_factory

logger = get_logger(__name__)

BATCH_SIZE = 50


class EmbeddingImportError(Exception):
    """Raised when the embeddings document cannot be read."""


@dataclass
class ImportStats:
    """Statistics from an import run."""

    total: int = 0
    updated: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "updated": self.updated, "errors": self.errors}


def parse_embeddings_document(text: str | bytes) -> list[Any]:
    """Extract the embeddings list from ``{"embeddings": [{"values": [...]}, ...]}``.

    Raises:
        EmbeddingImportError: On invalid JSON or a missing embeddings list
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        raise EmbeddingImportError(f"Invalid embeddings JSON: {e}") from e

    embeddings = data.get("embeddings") if isinstance(data, dict) else None
    if not isinstance(embeddings, list):
        raise EmbeddingImportError("Document has no 'embeddings' list")
    return embeddings


def _vector_of(entry: Any, dimensions: int) -> list[float] | None:
    values = entry.get("values") if isinstance(entry, dict) else None
    if not isinstance(values, list) or len(values) != dimensions:
        return None
    try:
        return [float(v) for v in values]
    except (TypeError, ValueError):
        return None


async def run_update_embeddings(
    text: str | bytes,
    dimensions: int | None = None,
) -> ImportStats:
    """Store embeddings; the i-th entry belongs to movie id ``i + 1``.

    Entries with the wrong dimension are counted as errors and skipped.

    Args:
        text: Embeddings JSON document
        dimensions: Expected vector length (defaults to config)

    Returns:
        ImportStats with total, updated and error counts
    """
    dimensions = dimensions or config.embedding_dimensions
    embeddings = parse_embeddings_document(text)
    stats = ImportStats(total=len(embeddings))

    session_factory = get_session_factory()
    async with session_factory() as session:
        repo = MoviesRepo(session)

        for start in range(0, len(embeddings), BATCH_SIZE):
            batch: dict[int, list[float]] = {}
            for offset, entry in enumerate(embeddings[start:start + BATCH_SIZE]):
                movie_id = start + offset + 1
                vector = _vector_of(entry, dimensions)
                if vector is None:
                    logger.warning(f"Skipping malformed embedding for movie {movie_id}")
                    stats.errors += 1
                    continue
                batch[movie_id] = vector

            updated = await repo.update_embeddings(batch)
            stats.updated += updated
            stats.errors += len(batch) - updated

    logger.info(
        f"Embedding import complete: total={stats.total} "
        f"updated={stats.updated} errors={stats.errors}"
    )
    return stats

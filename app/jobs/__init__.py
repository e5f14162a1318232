"""Jobs module for out-of-band corpus maintenance."""

from app.jobs.seed_movies import SeedStats, parse_movies_csv, run_seed_movies
from app.jobs.update_embeddings import (
    EmbeddingImportError,
    ImportStats,
    parse_embeddings_document,
    run_update_embeddings,
)

__all__ = [
    "EmbeddingImportError",
    "ImportStats",
    "SeedStats",
    "parse_embeddings_document",
    "parse_movies_csv",
    "run_seed_movies",
    "run_update_embeddings",
]

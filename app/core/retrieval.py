"""Candidate retrieval: in-memory cosine index and record join."""

import numpy as np

from app.core.contracts import Candidate, MovieCatalog, NearestNeighborIndex
from app.core.errors import RetrievalFailure
from app.logging import get_logger

logger = get_logger(__name__)


class VectorIndex:
    """Cosine-similarity index over corpus embeddings held in memory.

    Vectors are normalized once at build time so a query costs a single
    matrix-vector product.
    """

    def __init__(self, dimensions: int) -> None:
        self.dimensions = dimensions
        self._ids = np.zeros(0, dtype=np.int64)
        self._matrix = np.zeros((0, dimensions), dtype=np.float32)

    def __len__(self) -> int:
        return int(self._ids.shape[0])

    def build(self, entries: list[tuple[int, list[float]]]) -> int:
        """Replace the index contents.

        Entries whose vector length differs from the index dimension are skipped.

        Args:
            entries: (movie id, embedding) pairs

        Returns:
            Number of indexed vectors
        """
        kept = sorted(
            (movie_id, vector)
            for movie_id, vector in entries
            if vector is not None and len(vector) == self.dimensions
        )
        skipped = len(entries) - len(kept)
        if skipped:
            logger.warning(f"Skipped {skipped} embeddings with wrong dimension")

        if not kept:
            self._ids = np.zeros(0, dtype=np.int64)
            self._matrix = np.zeros((0, self.dimensions), dtype=np.float32)
            return 0

        self._ids = np.array([movie_id for movie_id, _ in kept], dtype=np.int64)
        matrix = np.array([vector for _, vector in kept], dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True) + 1e-9
        self._matrix = matrix / norms
        logger.info(f"Vector index built with {len(kept)} embeddings")
        return len(kept)

    def search(self, vector: list[float], limit: int) -> list[tuple[int, float]]:
        """Return up to ``limit`` (id, similarity) pairs, most similar first.

        Similarity is ``1 - cosine distance``.

        Raises:
            RetrievalFailure: If the query dimension does not match
        """
        query = np.asarray(vector, dtype=np.float32)
        if query.ndim != 1 or query.shape[0] != self.dimensions:
            raise RetrievalFailure(
                f"Query vector has dimension {query.shape[-1] if query.ndim else 0}, "
                f"expected {self.dimensions}"
            )
        if limit <= 0 or len(self) == 0:
            return []

        query = query / (np.linalg.norm(query) + 1e-9)
        sims = self._matrix @ query
        order = np.argsort(-sims, kind="stable")[:limit]
        return [(int(self._ids[i]), float(sims[i])) for i in order]


async def retrieve_candidates(
    index: NearestNeighborIndex,
    catalog: MovieCatalog,
    vector: list[float],
    limit: int,
) -> list[Candidate]:
    """Run the similarity search and join full movie records.

    Ids returned by the index but missing from the catalog are dropped.

    Args:
        index: Nearest-neighbor index
        catalog: Movie catalog for full records
        vector: Query embedding
        limit: Number of neighbors to retrieve

    Returns:
        Candidates in retrieval order

    Raises:
        RetrievalFailure: On index or catalog errors
    """
    try:
        matches = index.search(vector, limit)
    except RetrievalFailure:
        raise
    except Exception as e:
        logger.exception(f"Similarity search failed: {e}")
        raise RetrievalFailure(f"Similarity search failed: {e}") from e

    if not matches:
        return []

    try:
        movies = await catalog.get_movies([movie_id for movie_id, _ in matches])
    except Exception as e:
        logger.exception(f"Fetching matched movies failed: {e}")
        raise RetrievalFailure(f"Fetching matched movies failed: {e}") from e

    by_id = {movie.id: movie for movie in movies}
    candidates: list[Candidate] = []
    dropped = 0

    for movie_id, similarity in matches:
        movie = by_id.get(movie_id)
        if movie is None:
            dropped += 1
            continue
        candidates.append(Candidate(movie=movie, similarity=similarity))

    if dropped:
        logger.warning(f"Dropped {dropped} matched ids missing from the catalog")

    return candidates

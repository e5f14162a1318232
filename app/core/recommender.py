"""Recommendation pipeline: profile, embed, retrieve, score, diversify, explain."""

import time
from dataclasses import dataclass

from app.config import config
from app.core.contracts import (
    Candidate,
    Embedder,
    Explainer,
    MovieCatalog,
    NearestNeighborIndex,
    Recommendation,
    RecommendationRequest,
)
from app.core.diversity import DEFAULT_CATEGORY_CAP, select_diverse
from app.core.errors import EmbeddingUnavailable, InvalidInput, RecommendationError, RetrievalFailure
from app.core.feedback import fold_feedback, has_feedback
from app.core.profile import build_taste_profile, validate_ratings
from app.core.rationale import generate_explanations
from app.core.retrieval import retrieve_candidates
from app.core.scoring import ScoreWeights, score_candidates
from app.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PipelineSettings:
    """Tunables of the pipeline."""

    retrieval_limit: int = 50
    max_match_count: int = 20
    category_cap: int = DEFAULT_CATEGORY_CAP
    weights: ScoreWeights = ScoreWeights()

    @classmethod
    def from_config(cls) -> "PipelineSettings":
        """Build settings from application config."""
        return cls(
            retrieval_limit=config.recs_retrieval_limit,
            max_match_count=config.recs_max_match_count,
            category_cap=config.recs_category_cap,
            weights=ScoreWeights(
                similarity=config.recs_weight_similarity,
                intrinsic=config.recs_weight_intrinsic,
                affinity=config.recs_weight_affinity,
            ),
        )


class RecommendationPipeline:
    """Stateless recommendation pipeline over injected capabilities.

    Every call rebuilds the taste profile from its inputs; nothing is
    carried between calls except what the caller passes back in.
    """

    def __init__(
        self,
        embedder: Embedder,
        index: NearestNeighborIndex,
        catalog: MovieCatalog,
        explainer: Explainer | None = None,
        settings: PipelineSettings | None = None,
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.catalog = catalog
        self.explainer = explainer
        self.settings = settings or PipelineSettings()

    def _check_match_count(self, match_count: int) -> None:
        if isinstance(match_count, bool) or not isinstance(match_count, int):
            raise InvalidInput("matchCount must be an integer")
        if not 1 <= match_count <= self.settings.max_match_count:
            raise InvalidInput(
                f"matchCount must be between 1 and {self.settings.max_match_count}"
            )

    async def _embed(self, text: str) -> list[float]:
        try:
            vector = await self.embedder.embed(text)
        except RecommendationError:
            raise
        except Exception as e:
            logger.exception(f"Embedding failed: {e}")
            raise EmbeddingUnavailable(f"Embedding generation failed: {e}") from e

        if not vector:
            raise EmbeddingUnavailable("No embedding returned")
        return vector

    async def recommend(self, request: RecommendationRequest) -> list[Recommendation]:
        """Run the full pipeline for a ratings request.

        Args:
            request: Ratings, free-text preferences, feedback and match count

        Returns:
            Up to ``match_count`` recommendations, best first

        Raises:
            InvalidInput: Malformed request (raised before any external call)
            EmbeddingUnavailable: Embedding service failed
            RateLimited: Embedding service throttled the request
            RetrievalFailure: Similarity search or record fetch failed
        """
        started = time.monotonic()

        self._check_match_count(request.match_count)
        validate_ratings(request.ratings)
        likes, dislikes = fold_feedback(request.likes, request.dislikes, request.feedback)

        try:
            lookup = await self.catalog.find_by_titles([r.title for r in request.ratings])
        except Exception as e:
            logger.exception(f"Rated title lookup failed: {e}")
            raise RetrievalFailure(f"Rated title lookup failed: {e}") from e

        profile = build_taste_profile(request.ratings, lookup, likes=likes, dislikes=dislikes)

        vector = await self._embed(profile.document)
        candidates = await retrieve_candidates(
            self.index, self.catalog, vector, self.settings.retrieval_limit
        )

        scored = score_candidates(candidates, profile, self.settings.weights)
        selected = select_diverse(scored, request.match_count, self.settings.category_cap)

        movies = [s.movie for s in selected]
        explanations = await generate_explanations(self.explainer, movies, profile.document)

        recommendations = [
            Recommendation(
                movie=s.movie,
                similarity=s.similarity,
                final_score=s.final_score,
                explanation=explanations.get(s.movie.id),
                feedback_eligible=not has_feedback(request.feedback, s.movie.title),
            )
            for s in selected
        ]

        logger.info(
            "Recommendations computed",
            extra={
                "ctx": {
                    "ratings": len(request.ratings),
                    "resolved": len(lookup),
                    "candidates": len(candidates),
                    "scored": len(scored),
                    "returned": len(recommendations),
                    "explained": sum(1 for r in recommendations if r.explanation),
                    "ms": int((time.monotonic() - started) * 1000),
                }
            },
        )

        return recommendations

    async def search(self, description: str, match_count: int) -> list[Candidate]:
        """Single-description mode: raw similarity order, no scoring or diversity.

        Raises:
            InvalidInput: Missing description or invalid match count
            EmbeddingUnavailable / RateLimited / RetrievalFailure: Upstream failures
        """
        if not isinstance(description, str) or not description.strip():
            raise InvalidInput("description and matchCount are required")
        self._check_match_count(match_count)

        vector = await self._embed(description.strip())
        candidates = await retrieve_candidates(self.index, self.catalog, vector, match_count)
        candidates.sort(key=lambda c: (-c.similarity, c.movie.id))

        logger.info(
            "Description search computed",
            extra={"ctx": {"requested": match_count, "returned": len(candidates)}},
        )
        return candidates

"""Core module containing the recommendation pipeline and domain types."""

from app.core.contracts import (
    Candidate,
    Embedder,
    Explainer,
    FeedbackMarker,
    FeedbackState,
    MovieCatalog,
    NearestNeighborIndex,
    RatedInput,
    Recommendation,
    RecommendationRequest,
    ReferenceMovie,
    Resolved,
    ScoredCandidate,
    TasteProfile,
    Unresolved,
)
from app.core.diversity import select_diverse
from app.core.errors import (
    EmbeddingUnavailable,
    ExplanationFailure,
    InvalidInput,
    RateLimited,
    RecommendationError,
    RetrievalFailure,
)
from app.core.feedback import feedback_from_dict, fold_feedback, has_feedback, mark
from app.core.profile import build_taste_profile, validate_ratings
from app.core.rationale import LLMExplainer, generate_explanations
from app.core.recommender import PipelineSettings, RecommendationPipeline
from app.core.retrieval import VectorIndex, retrieve_candidates
from app.core.scoring import ScoreWeights, score_candidates

__all__ = [
    # Contracts/Types
    "Candidate",
    "Embedder",
    "Explainer",
    "FeedbackMarker",
    "FeedbackState",
    "MovieCatalog",
    "NearestNeighborIndex",
    "RatedInput",
    "Recommendation",
    "RecommendationRequest",
    "ReferenceMovie",
    "Resolved",
    "ScoredCandidate",
    "TasteProfile",
    "Unresolved",
    # Errors
    "RecommendationError",
    "InvalidInput",
    "EmbeddingUnavailable",
    "RateLimited",
    "RetrievalFailure",
    "ExplanationFailure",
    # Pipeline
    "PipelineSettings",
    "RecommendationPipeline",
    "build_taste_profile",
    "validate_ratings",
    "VectorIndex",
    "retrieve_candidates",
    "ScoreWeights",
    "score_candidates",
    "select_diverse",
    "LLMExplainer",
    "generate_explanations",
    # Feedback
    "feedback_from_dict",
    "fold_feedback",
    "has_feedback",
    "mark",
]

"""Error taxonomy for the recommendation pipeline."""


class RecommendationError(Exception):
    """Base exception for failures surfaced to the caller."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(RecommendationError):
    """Malformed or missing request fields. Not retryable."""

    status_code = 400


class EmbeddingUnavailable(RecommendationError):
    """Embedding service unreachable or returned no vector."""

    status_code = 500


class RateLimited(RecommendationError):
    """Upstream throttling. Retryable after a delay."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded. Please try again later.", retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class RetrievalFailure(RecommendationError):
    """Nearest-neighbor search or record fetch failed."""

    status_code = 500


class ExplanationFailure(Exception):
    """Explanation generation failed. Absorbed by the pipeline, never surfaced."""

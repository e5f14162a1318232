"""Domain contracts and type definitions."""

from dataclasses import dataclass, field
from typing import Any, Protocol, Union

from app.core.errors import InvalidInput

UNKNOWN_CATEGORY = "Unknown"


@dataclass(frozen=True)
class RatedInput:
    """A movie the user rated, with an optional fallback description."""

    title: str
    rating: int
    description: str | None = None


@dataclass(frozen=True)
class ReferenceMovie:
    """Immutable corpus entry."""

    id: int
    title: str
    categories: tuple[str, ...] = ()
    intrinsic_score: float | None = None
    synopsis: str | None = None
    director: str | None = None
    release_year: int | None = None
    poster_ref: str | None = None

    @property
    def primary_category(self) -> str:
        return self.categories[0] if self.categories else UNKNOWN_CATEGORY

    def to_dict(self) -> dict[str, Any]:
        """Convert to the public response shape."""
        return {
            "id": self.id,
            "movie_title": self.title,
            "genres": list(self.categories),
            "imdb_rating": self.intrinsic_score,
            "overview": self.synopsis,
            "director": self.director,
            "released_year": self.release_year,
            "poster_link": self.poster_ref,
        }


@dataclass(frozen=True)
class Resolved:
    """A rated title found in the corpus."""

    movie: ReferenceMovie


@dataclass(frozen=True)
class Unresolved:
    """A rated title missing from the corpus; the description is mandatory."""

    description: str

    def __post_init__(self) -> None:
        if not self.description or not self.description.strip():
            raise InvalidInput("A description is required for movies not found in the catalog")


Resolution = Union[Resolved, Unresolved]


@dataclass(frozen=True)
class TasteProfile:
    """Request-scoped summary of the user's taste."""

    document: str
    excluded_titles: frozenset[str]
    category_affinity: dict[str, int]
    strong_likes: tuple[str, ...] = ()
    neutral: tuple[str, ...] = ()
    dislikes: tuple[str, ...] = ()


@dataclass(frozen=True)
class Candidate:
    """Corpus entry joined with its retrieval similarity."""

    movie: ReferenceMovie
    similarity: float


@dataclass(frozen=True)
class ScoredCandidate:
    """Candidate with its blended score."""

    candidate: Candidate
    final_score: float
    primary_category: str

    @property
    def movie(self) -> ReferenceMovie:
        return self.candidate.movie

    @property
    def similarity(self) -> float:
        return self.candidate.similarity


@dataclass
class Recommendation:
    """Final output item."""

    movie: ReferenceMovie
    similarity: float
    final_score: float
    explanation: str | None = None
    feedback_eligible: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to the public response shape."""
        return {
            **self.movie.to_dict(),
            "similarity": self.similarity,
            "final_score": self.final_score,
            "explanation": self.explanation,
            "feedback_eligible": self.feedback_eligible,
        }


@dataclass(frozen=True)
class FeedbackMarker:
    """A delivered recommendation the user reacted to."""

    title: str
    categories: tuple[str, ...] = ()

    def render(self) -> str:
        if not self.categories:
            return self.title
        return f"{self.title} ({', '.join(self.categories)})"


@dataclass(frozen=True)
class FeedbackState:
    """Caller-owned feedback carried between pipeline runs."""

    more: tuple[FeedbackMarker, ...] = ()
    less: tuple[FeedbackMarker, ...] = ()


@dataclass
class RecommendationRequest:
    """Validated ratings-mode request."""

    ratings: list[RatedInput]
    likes: str | None = None
    dislikes: str | None = None
    match_count: int = 10
    feedback: FeedbackState = field(default_factory=FeedbackState)


class Embedder(Protocol):
    """Turns text into a fixed-length vector."""

    async def embed(self, text: str) -> list[float]:
        """Embed text.

        Raises:
            EmbeddingUnavailable: Service unreachable or no vector returned
            RateLimited: Service signalled throttling
        """
        ...


class NearestNeighborIndex(Protocol):
    """Similarity search over corpus embeddings."""

    def search(self, vector: list[float], limit: int) -> list[tuple[int, float]]:
        """Return up to ``limit`` (movie id, similarity) pairs, most similar first."""
        ...


class MovieCatalog(Protocol):
    """Read access to reference movies."""

    async def find_by_titles(self, titles: list[str]) -> dict[str, ReferenceMovie]:
        """Case-insensitive exact title lookup keyed by lower-cased title."""
        ...

    async def get_movies(self, ids: list[int]) -> list[ReferenceMovie]:
        """Fetch full records; unknown ids are omitted."""
        ...


class Explainer(Protocol):
    """Produces one short justification per movie id."""

    async def explain(
        self,
        movies: list[ReferenceMovie],
        profile_document: str,
    ) -> dict[int, str]:
        """Explain a batch of movies.

        Raises:
            ExplanationFailure: On malformed output or upstream error
        """
        ...

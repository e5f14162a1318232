"""Blended relevance scoring of retrieved candidates."""

from dataclasses import dataclass

from app.core.contracts import Candidate, ScoredCandidate, TasteProfile

# Used when a movie has no intrinsic rating (midpoint of the 0-10 scale)
DEFAULT_INTRINSIC_SCORE = 5.0


@dataclass(frozen=True)
class ScoreWeights:
    """Blend weights; they sum to 1.0."""

    similarity: float = 0.6
    intrinsic: float = 0.2
    affinity: float = 0.2


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def normalized_intrinsic(intrinsic_score: float | None) -> float:
    """Map a 0-10 intrinsic rating into [0, 1]."""
    score = DEFAULT_INTRINSIC_SCORE if intrinsic_score is None else intrinsic_score
    return _clamp(score / 10)


def category_affinity(categories: tuple[str, ...], affinity_map: dict[str, int]) -> float:
    """Fraction of a movie's categories the user strongly liked."""
    if not categories:
        return 0.0
    hits = sum(1 for category in categories if category in affinity_map)
    return hits / max(1, len(categories))


def blended_score(
    candidate: Candidate,
    affinity_map: dict[str, int],
    weights: ScoreWeights,
) -> float:
    """Compute the final score of one candidate.

    Formula:
    - weights.similarity * similarity
    - + weights.intrinsic * normalized intrinsic score
    - + weights.affinity * category affinity
    """
    movie = candidate.movie
    return (
        weights.similarity * _clamp(candidate.similarity)
        + weights.intrinsic * normalized_intrinsic(movie.intrinsic_score)
        + weights.affinity * category_affinity(movie.categories, affinity_map)
    )


def exclude_rated(candidates: list[Candidate], excluded_titles: frozenset[str]) -> list[Candidate]:
    """Drop candidates the user has already rated (case-insensitive title)."""
    return [c for c in candidates if c.movie.title.strip().lower() not in excluded_titles]


def score_candidates(
    candidates: list[Candidate],
    profile: TasteProfile,
    weights: ScoreWeights | None = None,
) -> list[ScoredCandidate]:
    """Exclude rated titles, score the rest and sort.

    Ties on final score are broken by ascending movie id.

    Args:
        candidates: Retrieved candidates with similarity
        profile: Taste profile with exclusion set and affinity map
        weights: Blend weights (defaults to 0.6 / 0.2 / 0.2)

    Returns:
        Scored candidates, highest final score first
    """
    weights = weights or ScoreWeights()

    scored = [
        ScoredCandidate(
            candidate=candidate,
            final_score=blended_score(candidate, profile.category_affinity, weights),
            primary_category=candidate.movie.primary_category,
        )
        for candidate in exclude_rated(candidates, profile.excluded_titles)
    ]

    scored.sort(key=lambda s: (-s.final_score, s.movie.id))
    return scored

"""Taste profile construction from rated movies and free-text preferences."""

from app.core.contracts import (
    RatedInput,
    ReferenceMovie,
    Resolution,
    Resolved,
    TasteProfile,
    Unresolved,
)
from app.core.errors import InvalidInput

MIN_RATING = 1
MAX_RATING = 10

# Bucket thresholds (inclusive)
STRONG_LIKE_MIN = 8
DISLIKE_MAX = 4

SECTION_HEADINGS = {
    "strong": "Movies I loved:",
    "neutral": "Movies I found okay:",
    "dislike": "Movies I disliked:",
    "more": "More of this:",
    "less": "Less of this:",
}


def validate_ratings(ratings: list[RatedInput]) -> None:
    """Check structural validity of rated inputs.

    Args:
        ratings: Rated inputs in submission order

    Raises:
        InvalidInput: On empty input, empty title or out-of-range rating
    """
    if not ratings:
        raise InvalidInput("At least one rated movie is required")

    for idx, rated in enumerate(ratings, start=1):
        if not rated.title or not rated.title.strip():
            raise InvalidInput(f"Rating #{idx} is missing a title")
        rating = rated.rating
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise InvalidInput(f"Rating for '{rated.title}' must be an integer")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidInput(
                f"Rating for '{rated.title}' must be between {MIN_RATING} and {MAX_RATING}"
            )


def resolve_rating(
    rated: RatedInput,
    lookup: dict[str, ReferenceMovie],
) -> Resolution:
    """Resolve a rated title against the catalog lookup.

    Raises:
        InvalidInput: If the title is unknown and no description was given
    """
    movie = lookup.get(rated.title.strip().lower())
    if movie is not None:
        return Resolved(movie)
    try:
        return Unresolved(rated.description or "")
    except InvalidInput:
        raise InvalidInput(
            f"'{rated.title}' was not found in the catalog; please add a short description"
        ) from None


def render_line(rated: RatedInput, resolution: Resolution) -> str:
    """Render one rated movie as a profile line."""
    if isinstance(resolution, Resolved):
        movie = resolution.movie
        return (
            f"{rated.title} | {', '.join(movie.categories)} | "
            f"{movie.synopsis or 'N/A'} | User rating: {rated.rating}/10"
        )
    return f"{rated.title} | {resolution.description or 'No description'} | User rating: {rated.rating}/10"


def _bucket(rating: int) -> str:
    if rating >= STRONG_LIKE_MIN:
        return "strong"
    if rating <= DISLIKE_MAX:
        return "dislike"
    return "neutral"


def build_taste_profile(
    ratings: list[RatedInput],
    lookup: dict[str, ReferenceMovie],
    likes: str | None = None,
    dislikes: str | None = None,
) -> TasteProfile:
    """Build the taste profile document and its side structures.

    The document lists rated movies in three buckets (loved, okay,
    disliked), each under its own heading and omitted when empty,
    followed by the optional "more of this" / "less of this" text.

    Args:
        ratings: Rated inputs in submission order
        lookup: Catalog movies keyed by lower-cased title
        likes: Optional free text describing what to get more of
        dislikes: Optional free text describing what to avoid

    Returns:
        TasteProfile with the embedding document, the exclusion set of
        rated titles and the category affinity map of strong likes

    Raises:
        InvalidInput: On invalid ratings or unresolved titles without description
    """
    validate_ratings(ratings)

    buckets: dict[str, list[str]] = {"strong": [], "neutral": [], "dislike": []}
    excluded: set[str] = set()
    affinity: dict[str, int] = {}

    for rated in ratings:
        resolution = resolve_rating(rated, lookup)
        bucket = _bucket(rated.rating)
        buckets[bucket].append(render_line(rated, resolution))
        excluded.add(rated.title.strip().lower())

        if bucket == "strong" and isinstance(resolution, Resolved):
            for category in resolution.movie.categories:
                affinity[category] = max(affinity.get(category, 0), rated.rating)

    sections: list[str] = []
    for key in ("strong", "neutral", "dislike"):
        if buckets[key]:
            lines = "\n".join(f"- {line}" for line in buckets[key])
            sections.append(f"{SECTION_HEADINGS[key]}\n{lines}")

    if likes and likes.strip():
        sections.append(f"{SECTION_HEADINGS['more']}\n{likes.strip()}")
    if dislikes and dislikes.strip():
        sections.append(f"{SECTION_HEADINGS['less']}\n{dislikes.strip()}")

    return TasteProfile(
        document="\n\n".join(sections),
        excluded_titles=frozenset(excluded),
        category_affinity=affinity,
        strong_likes=tuple(buckets["strong"]),
        neutral=tuple(buckets["neutral"]),
        dislikes=tuple(buckets["dislike"]),
    )

"""Natural-language explanations for recommended movies."""

import json
import re
from typing import Any, Awaitable, Callable

from app.core.contracts import Explainer, ReferenceMovie
from app.core.errors import ExplanationFailure
from app.logging import get_logger

logger = get_logger(__name__)

# Maximum explanation length
MAX_EXPLANATION_LENGTH = 300

# Longest synopsis excerpt sent per movie
SYNOPSIS_EXCERPT_CHARS = 400

EXPLANATION_SYSTEM_PROMPT = (
    "You are a movie recommendation assistant. For every candidate movie, write "
    "ONE or TWO sentences explaining why it fits the viewer's taste profile. "
    "Use only the facts given for the movie and the profile; do not invent cast, "
    "plot details or awards. No spoilers. "
    "Return ONLY a JSON array with exactly one object per candidate, shaped "
    '{"id": <candidate id>, "explanation": "<text>"}. No markdown, no commentary.'
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

TextGenerator = Callable[..., Awaitable[str]]


def _truncate(text: str, max_length: int) -> str:
    text = " ".join(text.split())
    if len(text) > max_length:
        text = text[: max_length - 3].rstrip() + "..."
    return text


def build_explanation_prompt(movies: list[ReferenceMovie], profile_document: str) -> str:
    """Build the user prompt listing the taste profile and candidates.

    Args:
        movies: Candidates to explain
        profile_document: Taste profile document used as the query

    Returns:
        Prompt text
    """
    lines = []
    for movie in movies:
        synopsis = (movie.synopsis or "N/A")[:SYNOPSIS_EXCERPT_CHARS]
        genres = ", ".join(movie.categories) or "Unknown"
        lines.append(f"- id={movie.id} | {movie.title} | {genres} | {synopsis}")

    return (
        f"Viewer taste profile:\n{profile_document}\n\n"
        f"Candidates:\n" + "\n".join(lines)
    )


def parse_explanations(
    text: str,
    expected_ids: set[int],
    max_length: int = MAX_EXPLANATION_LENGTH,
) -> dict[int, str]:
    """Parse the model response into an id → explanation map.

    Entries for unknown ids and empty explanations are ignored.

    Args:
        text: Raw model output, expected to be a JSON array
        expected_ids: Ids of the movies that were sent
        max_length: Explanations are truncated to this length

    Returns:
        Mapping of movie id to explanation

    Raises:
        ExplanationFailure: If the output is not a JSON array of objects
    """
    cleaned = _CODE_FENCE.sub("", (text or "").strip())
    try:
        data: Any = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        raise ExplanationFailure(f"Explanation output is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ExplanationFailure("Explanation output is not a JSON array")

    explanations: dict[int, str] = {}
    for entry in data:
        if not isinstance(entry, dict):
            raise ExplanationFailure("Explanation entries must be objects")
        try:
            movie_id = int(entry.get("id"))
        except (TypeError, ValueError):
            continue
        explanation = entry.get("explanation")
        if movie_id not in expected_ids or not isinstance(explanation, str):
            continue
        if explanation.strip():
            explanations[movie_id] = _truncate(explanation, max_length)

    return explanations


class LLMExplainer:
    """Explainer issuing one text-generation call per result batch."""

    def __init__(
        self,
        generate: TextGenerator | None = None,
        max_length: int = MAX_EXPLANATION_LENGTH,
    ) -> None:
        if generate is None:
            from app.llm.llm_adapter import generate_text

            generate = generate_text
        self._generate = generate
        self.max_length = max_length

    async def explain(
        self,
        movies: list[ReferenceMovie],
        profile_document: str,
    ) -> dict[int, str]:
        """Explain a batch of movies in a single call.

        Raises:
            ExplanationFailure: On upstream error or malformed output
        """
        if not movies:
            return {}

        try:
            response = await self._generate(
                system_prompt=EXPLANATION_SYSTEM_PROMPT,
                user_prompt=build_explanation_prompt(movies, profile_document),
                max_tokens=120 * len(movies) + 100,
                temperature=0.3,
            )
        except Exception as e:
            raise ExplanationFailure(f"Explanation generation failed: {e}") from e

        return parse_explanations(response, {m.id for m in movies}, self.max_length)


async def generate_explanations(
    explainer: Explainer | None,
    movies: list[ReferenceMovie],
    profile_document: str,
) -> dict[int, str | None]:
    """Best-effort explanations: any failure yields None for every movie.

    Args:
        explainer: Explanation capability, or None to skip
        movies: Admitted movies in result order
        profile_document: Taste profile document

    Returns:
        Mapping of every movie id to its explanation or None
    """
    empty: dict[int, str | None] = {movie.id: None for movie in movies}
    if explainer is None or not movies:
        return empty

    try:
        explained = await explainer.explain(movies, profile_document)
    except Exception as e:
        logger.warning(f"Explanations unavailable, continuing without: {e}")
        return empty

    return {movie.id: explained.get(movie.id) for movie in movies}

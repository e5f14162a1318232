"""More-like-this / less-like-this feedback folded into the next run."""

from typing import Any, Literal

from app.core.contracts import FeedbackMarker, FeedbackState
from app.core.errors import InvalidInput

FeedbackDirection = Literal["more", "less"]


def has_feedback(state: FeedbackState, title: str) -> bool:
    """Whether the title already received a more/less action."""
    key = title.strip().lower()
    return any(m.title.strip().lower() == key for m in (*state.more, *state.less))


def mark(
    state: FeedbackState,
    direction: FeedbackDirection,
    title: str,
    categories: tuple[str, ...] | list[str] = (),
) -> FeedbackState:
    """Return a new state with one more feedback marker.

    Args:
        state: Current feedback state
        direction: "more" or "less"
        title: Title of the delivered recommendation
        categories: Its categories

    Returns:
        New FeedbackState; the input state is not modified

    Raises:
        InvalidInput: On empty title, unknown direction or repeated feedback
    """
    if not title or not title.strip():
        raise InvalidInput("Feedback requires a title")
    if direction not in ("more", "less"):
        raise InvalidInput(f"Unknown feedback direction: {direction}")
    if has_feedback(state, title):
        raise InvalidInput(f"Feedback was already given for '{title.strip()}'")

    marker = FeedbackMarker(title=title.strip(), categories=tuple(categories))
    if direction == "more":
        return FeedbackState(more=(*state.more, marker), less=state.less)
    return FeedbackState(more=state.more, less=(*state.less, marker))


def _append(text: str | None, markers: tuple[FeedbackMarker, ...]) -> str | None:
    parts = [text.strip()] if text and text.strip() else []
    parts.extend(m.render() for m in markers)
    return "; ".join(parts) or None


def fold_feedback(
    likes: str | None,
    dislikes: str | None,
    state: FeedbackState,
) -> tuple[str | None, str | None]:
    """Append feedback markers to the free-text likes and dislikes.

    Markers render as ``title (cat1, cat2)`` and are joined with ``; ``.

    Returns:
        Tuple of (likes, dislikes)
    """
    return _append(likes, state.more), _append(dislikes, state.less)


def feedback_from_dict(data: dict[str, Any] | None) -> FeedbackState:
    """Build a FeedbackState from a request payload.

    Payload shape: ``{"more": [{"title", "categories"}], "less": [...]}``.

    Raises:
        InvalidInput: On malformed entries or a title given feedback twice
    """
    state = FeedbackState()
    if not data:
        return state

    for direction in ("more", "less"):
        for entry in data.get(direction) or []:
            if not isinstance(entry, dict):
                raise InvalidInput("Feedback entries must be objects with a title")
            categories = entry.get("categories") or []
            if not isinstance(categories, list):
                raise InvalidInput("Feedback categories must be a list")
            state = mark(state, direction, str(entry.get("title") or ""), [str(c) for c in categories])

    return state

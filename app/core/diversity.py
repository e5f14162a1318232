"""Per-category diversity cap over score-sorted candidates."""

from collections import defaultdict

from app.core.contracts import ScoredCandidate

DEFAULT_CATEGORY_CAP = 2


def select_diverse(
    scored: list[ScoredCandidate],
    count: int,
    cap: int = DEFAULT_CATEGORY_CAP,
) -> list[ScoredCandidate]:
    """Greedily pick up to ``count`` candidates, at most ``cap`` per primary category.

    Score order is preserved among admitted candidates. When the cap
    rejects too many candidates the result is shorter than ``count``;
    there is no second pass relaxing the cap.

    Args:
        scored: Candidates sorted by final score descending
        count: Number of results wanted
        cap: Maximum admitted candidates sharing a primary category

    Returns:
        Admitted candidates in score order
    """
    if count <= 0:
        return []

    per_category: dict[str, int] = defaultdict(int)
    selected: list[ScoredCandidate] = []

    for candidate in scored:
        if per_category[candidate.primary_category] >= cap:
            continue
        per_category[candidate.primary_category] += 1
        selected.append(candidate)
        if len(selected) >= count:
            break

    return selected

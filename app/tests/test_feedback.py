"""Tests for the more/less-like-this feedback loop."""

import pytest

from app.core.contracts import FeedbackState
from app.core.errors import InvalidInput
from app.core.feedback import feedback_from_dict, fold_feedback, has_feedback, mark


def test_mark_returns_new_state():
    state = FeedbackState()
    updated = mark(state, "less", "Paddington", ["Comedy", "Family"])

    assert state.less == ()
    assert updated.less[0].title == "Paddington"
    assert updated.less[0].categories == ("Comedy", "Family")


def test_mark_twice_rejected_across_directions():
    state = mark(FeedbackState(), "more", "Arrival", ["Sci-Fi"])
    with pytest.raises(InvalidInput):
        mark(state, "more", "arrival", [])
    with pytest.raises(InvalidInput):
        mark(state, "less", " ARRIVAL ", [])


def test_mark_validates_input():
    with pytest.raises(InvalidInput):
        mark(FeedbackState(), "more", "  ", [])
    with pytest.raises(InvalidInput):
        mark(FeedbackState(), "sideways", "Arrival", [])  # type: ignore[arg-type]


def test_has_feedback():
    state = mark(FeedbackState(), "less", "Paddington", ["Comedy"])
    assert has_feedback(state, "paddington")
    assert not has_feedback(state, "Arrival")


def test_fold_appends_semicolon_fragments():
    state = mark(FeedbackState(), "more", "Arrival", ["Sci-Fi", "Drama"])
    state = mark(state, "more", "Her", ["Romance"])
    state = mark(state, "less", "Paddington", ["Comedy", "Family"])

    likes, dislikes = fold_feedback("slow burn", None, state)

    assert likes == "slow burn; Arrival (Sci-Fi, Drama); Her (Romance)"
    assert dislikes == "Paddington (Comedy, Family)"


def test_fold_without_feedback_keeps_text():
    assert fold_feedback("a", "b", FeedbackState()) == ("a", "b")
    assert fold_feedback(None, "  ", FeedbackState()) == (None, None)


def test_fold_marker_without_categories():
    state = mark(FeedbackState(), "less", "Cats", [])
    assert fold_feedback(None, None, state) == (None, "Cats")


def test_from_dict():
    state = feedback_from_dict({
        "more": [{"title": "Arrival", "categories": ["Sci-Fi"]}],
        "less": [{"title": "Paddington", "categories": ["Comedy"]}],
    })
    assert [m.title for m in state.more] == ["Arrival"]
    assert [m.title for m in state.less] == ["Paddington"]
    assert feedback_from_dict(None) == FeedbackState()


def test_from_dict_rejects_duplicates():
    with pytest.raises(InvalidInput):
        feedback_from_dict({
            "more": [{"title": "Arrival"}],
            "less": [{"title": "Arrival"}],
        })

"""Tests for the recommendation pipeline."""

import pytest

from app.core.contracts import FeedbackState, RatedInput, RecommendationRequest
from app.core.errors import EmbeddingUnavailable, InvalidInput, RateLimited, RetrievalFailure
from app.core.feedback import mark
from app.core.recommender import PipelineSettings, RecommendationPipeline
from app.tests.fakes import FakeCatalog, FakeEmbedder, FakeExplainer, FakeIndex


def _pipeline(corpus, embedder=None, explainer=None, settings=None):
    movies, matches = corpus
    return RecommendationPipeline(
        embedder=embedder or FakeEmbedder(),
        index=FakeIndex(matches),
        catalog=FakeCatalog(movies),
        explainer=explainer,
        settings=settings,
    )


def _request(match_count=3, feedback=None, **kwargs):
    return RecommendationRequest(
        ratings=kwargs.pop("ratings", [RatedInput(title="Inception", rating=9)]),
        match_count=match_count,
        feedback=feedback or FeedbackState(),
        **kwargs,
    )


@pytest.mark.anyio
async def test_rated_title_excluded_and_blended_order(inception_corpus):
    pipeline = _pipeline(inception_corpus, explainer=FakeExplainer())

    recs = await pipeline.recommend(_request(match_count=3))

    assert len(recs) == 3
    assert "Inception" not in [r.movie.title for r in recs]
    # Memento's shared Thriller category lifts it above The Prestige
    assert [r.movie.id for r in recs] == [2, 4, 3]
    assert recs[0].final_score == pytest.approx(0.6 * 0.9 + 0.2 * 0.86 + 0.2 * 0.5)
    assert [r.final_score for r in recs] == sorted((r.final_score for r in recs), reverse=True)
    assert recs[0].explanation == "Because Interstellar"


@pytest.mark.anyio
async def test_retrieves_more_than_requested(inception_corpus):
    movies, matches = inception_corpus
    index = FakeIndex(matches)
    pipeline = RecommendationPipeline(FakeEmbedder(), index, FakeCatalog(movies))

    await pipeline.recommend(_request(match_count=2))

    assert index.limits == [50]


@pytest.mark.anyio
async def test_unresolved_without_description_rejected_before_embedding(inception_corpus):
    embedder = FakeEmbedder()
    pipeline = _pipeline(inception_corpus, embedder=embedder)

    with pytest.raises(InvalidInput):
        await pipeline.recommend(_request(ratings=[RatedInput(title="Unknown Film", rating=7)]))

    assert embedder.calls == []


@pytest.mark.anyio
async def test_unresolved_with_description_used_in_profile(inception_corpus):
    embedder = FakeEmbedder()
    pipeline = _pipeline(inception_corpus, embedder=embedder)

    await pipeline.recommend(_request(ratings=[
        RatedInput(title="Home Movie", rating=9, description="Heist in a dream"),
    ]))

    assert "Home Movie | Heist in a dream | User rating: 9/10" in embedder.calls[0]


@pytest.mark.anyio
@pytest.mark.parametrize("match_count", [0, 21, -1])
async def test_match_count_out_of_range(inception_corpus, match_count):
    embedder = FakeEmbedder()
    pipeline = _pipeline(inception_corpus, embedder=embedder)

    with pytest.raises(InvalidInput):
        await pipeline.recommend(_request(match_count=match_count))
    assert embedder.calls == []


@pytest.mark.anyio
async def test_malformed_explanations_keep_results(inception_corpus):
    pipeline = _pipeline(inception_corpus, explainer=FakeExplainer(fail=True))

    recs = await pipeline.recommend(_request(match_count=3))

    assert len(recs) == 3
    assert all(r.explanation is None for r in recs)
    assert all(r.to_dict()["explanation"] is None for r in recs)


@pytest.mark.anyio
async def test_no_explainer_configured(inception_corpus):
    recs = await _pipeline(inception_corpus).recommend(_request())
    assert all(r.explanation is None for r in recs)


@pytest.mark.anyio
async def test_feedback_folded_into_next_run(inception_corpus):
    embedder = FakeEmbedder()
    pipeline = _pipeline(inception_corpus, embedder=embedder)

    first = await pipeline.recommend(_request(match_count=5))
    paddington = next(r for r in first if r.movie.title == "Paddington")
    assert paddington.feedback_eligible

    feedback = mark(FeedbackState(), "less", paddington.movie.title, paddington.movie.categories)
    second = await pipeline.recommend(_request(match_count=5, feedback=feedback))

    document = embedder.calls[-1]
    less_section = document.split("Less of this:")[1]
    assert "Paddington (Comedy, Family)" in less_section

    by_title = {r.movie.title: r for r in second}
    assert not by_title["Paddington"].feedback_eligible
    assert all(r.feedback_eligible for t, r in by_title.items() if t != "Paddington")
    with pytest.raises(InvalidInput):
        mark(feedback, "more", "Paddington", ["Comedy"])


@pytest.mark.anyio
async def test_idempotent_for_same_input(inception_corpus):
    pipeline = _pipeline(inception_corpus, explainer=FakeExplainer())
    request = _request(match_count=4, likes="twisty plots")

    first = await pipeline.recommend(request)
    second = await pipeline.recommend(request)

    assert [r.to_dict() for r in first] == [r.to_dict() for r in second]


@pytest.mark.anyio
async def test_embedding_failure_aborts(inception_corpus):
    pipeline = _pipeline(inception_corpus, embedder=FakeEmbedder(error=RuntimeError("down")))
    with pytest.raises(EmbeddingUnavailable):
        await pipeline.recommend(_request())


@pytest.mark.anyio
async def test_empty_embedding_aborts(inception_corpus):
    pipeline = _pipeline(inception_corpus, embedder=FakeEmbedder(vector=[]))
    with pytest.raises(EmbeddingUnavailable):
        await pipeline.recommend(_request())


@pytest.mark.anyio
async def test_rate_limit_propagates(inception_corpus):
    pipeline = _pipeline(inception_corpus, embedder=FakeEmbedder(error=RateLimited(retry_after=7)))
    with pytest.raises(RateLimited) as exc_info:
        await pipeline.recommend(_request())
    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 7


@pytest.mark.anyio
async def test_index_error_is_retrieval_failure(inception_corpus):
    movies, _ = inception_corpus

    class BrokenIndex:
        def search(self, vector, limit):
            raise ValueError("index corrupt")

    pipeline = RecommendationPipeline(FakeEmbedder(), BrokenIndex(), FakeCatalog(movies))
    with pytest.raises(RetrievalFailure):
        await pipeline.recommend(_request())


@pytest.mark.anyio
async def test_empty_corpus_returns_nothing(inception_corpus):
    movies, _ = inception_corpus
    pipeline = RecommendationPipeline(FakeEmbedder(), FakeIndex([]), FakeCatalog(movies))
    assert await pipeline.recommend(_request()) == []


@pytest.mark.anyio
async def test_category_cap_from_settings(inception_corpus):
    settings = PipelineSettings(category_cap=1)
    recs = await _pipeline(inception_corpus, settings=settings).recommend(_request(match_count=5))
    categories = [r.movie.primary_category for r in recs]
    assert len(categories) == len(set(categories))


# Description mode

@pytest.mark.anyio
async def test_search_raw_similarity_order(inception_corpus):
    movies, matches = inception_corpus
    index = FakeIndex(matches)
    embedder = FakeEmbedder()
    pipeline = RecommendationPipeline(embedder, index, FakeCatalog(movies))

    results = await pipeline.search("  dream heist  ", 3)

    assert [c.movie.id for c in results] == [1, 2, 3]
    assert index.limits == [3]
    assert embedder.calls == ["dream heist"]


@pytest.mark.anyio
@pytest.mark.parametrize("description", ["", "   "])
async def test_search_requires_description(inception_corpus, description):
    with pytest.raises(InvalidInput, match="description and matchCount are required"):
        await _pipeline(inception_corpus).search(description, 3)

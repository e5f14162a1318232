"""Tests for the vector index and candidate retrieval."""

import pytest

from app.core.errors import RetrievalFailure
from app.core.retrieval import VectorIndex, retrieve_candidates
from app.tests.fakes import FakeCatalog, FakeIndex, make_movie


@pytest.fixture
def index():
    index = VectorIndex(dimensions=3)
    index.build([
        (3, [0.0, 1.0, 0.0]),
        (1, [1.0, 0.0, 0.0]),
        (2, [1.0, 1.0, 0.0]),
        (4, [0.0, 0.0, 2.0]),
    ])
    return index


def test_search_orders_by_cosine_similarity(index):
    results = index.search([1.0, 0.1, 0.0], limit=3)

    assert [movie_id for movie_id, _ in results] == [1, 2, 3]
    assert results[0][1] == pytest.approx(0.995, abs=1e-3)
    assert results[0][1] >= results[1][1] >= results[2][1]


def test_search_respects_limit(index):
    assert len(index.search([0.0, 0.0, 1.0], limit=2)) == 2
    assert index.search([0.0, 0.0, 1.0], limit=0) == []


def test_equal_similarity_keeps_ascending_id():
    index = VectorIndex(dimensions=2)
    index.build([(7, [1.0, 0.0]), (2, [2.0, 0.0]), (5, [0.5, 0.0])])
    assert [movie_id for movie_id, _ in index.search([1.0, 0.0], limit=3)] == [2, 5, 7]


def test_build_skips_wrong_dimension():
    index = VectorIndex(dimensions=3)
    assert index.build([(1, [1.0, 0.0, 0.0]), (2, [1.0, 0.0])]) == 1
    assert len(index) == 1


def test_dimension_mismatch_raises(index):
    with pytest.raises(RetrievalFailure):
        index.search([1.0, 0.0], limit=3)


def test_empty_index_returns_nothing():
    assert VectorIndex(dimensions=3).search([1.0, 0.0, 0.0], limit=5) == []


@pytest.mark.anyio
async def test_retrieve_joins_records_and_drops_missing():
    catalog = FakeCatalog([make_movie(1, "A"), make_movie(3, "C")])
    index = FakeIndex([(3, 0.9), (2, 0.8), (1, 0.7)])

    candidates = await retrieve_candidates(index, catalog, [1.0], limit=3)

    assert [(c.movie.id, c.similarity) for c in candidates] == [(3, 0.9), (1, 0.7)]


@pytest.mark.anyio
async def test_catalog_error_is_retrieval_failure():
    class BrokenCatalog(FakeCatalog):
        async def get_movies(self, ids):
            raise ConnectionError("db gone")

    with pytest.raises(RetrievalFailure):
        await retrieve_candidates(FakeIndex([(1, 0.5)]), BrokenCatalog([]), [1.0], limit=1)

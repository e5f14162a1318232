"""Tests for corpus seeding and embedding import jobs."""

import json

import pytest

from app.jobs import (
    EmbeddingImportError,
    SeedStats,
    parse_embeddings_document,
    parse_movies_csv,
    run_seed_movies,
    run_update_embeddings,
)
from app.storage import MoviesRepo, get_session_factory

CSV_TEXT = """id,poster_link,movie_title,genres,imdb_rating,overview,director,released_year
1,https://img/1.jpg,Inception,"Sci-Fi, Thriller",8.8,"A thief, in dreams.",Christopher Nolan,2010
2,,Amelie,"Comedy, Romance",,A shy waitress.,Jean-Pierre Jeunet,2001

3,,,Drama,7.0,No title,Nobody,1999
abc,,Bad Id,Drama,7.0,x,y,2000
4,,Short row
"""


def test_parse_movies_csv():
    stats = SeedStats()
    rows = parse_movies_csv(CSV_TEXT, stats)

    assert [row["id"] for row in rows] == [1, 2]
    inception = rows[0]
    assert inception["genres"] == ["Sci-Fi", "Thriller"]
    assert inception["overview"] == "A thief, in dreams."
    assert inception["imdb_rating"] == 8.8
    assert inception["released_year"] == 2010
    assert rows[1]["imdb_rating"] is None
    assert rows[1]["poster_link"] is None
    assert stats.skipped == 3
    assert len(stats.errors) == 3


def test_parse_embeddings_document():
    assert parse_embeddings_document('{"embeddings": [{"values": [1, 2]}]}') == [{"values": [1, 2]}]


@pytest.mark.parametrize("text", ["not json", "[]", '{"embeddings": {}}', '{"other": []}'])
def test_parse_embeddings_document_rejects(text):
    with pytest.raises(EmbeddingImportError):
        parse_embeddings_document(text)


@pytest.mark.anyio
async def test_seed_and_import(database):
    stats = await run_seed_movies(CSV_TEXT)
    assert stats.parsed == 2
    assert stats.upserted == 2

    # Re-seeding keeps existing rows
    await run_seed_movies(CSV_TEXT)

    document = json.dumps({
        "embeddings": [
            {"values": [1.0, 0.0, 0.0, 0.0]},
            {"values": [0.0, 1.0]},
            {"values": [0.0, 0.0, 1.0, 0.0]},
        ]
    })
    result = await run_update_embeddings(document)

    # Entry 2 has the wrong dimension; entry 3 has no movie id 3
    assert result.to_dict() == {"total": 3, "updated": 1, "errors": 2}

    async with get_session_factory()() as session:
        repo = MoviesRepo(session)
        assert await repo.count_movies() == 2
        assert await repo.list_embedded() == [(1, [1.0, 0.0, 0.0, 0.0])]

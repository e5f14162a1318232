"""Tests for the embedding API client."""

import json

import httpx
import pytest

from app.core.errors import EmbeddingUnavailable, RateLimited
from app.providers import embedding_client
from app.providers.embedding_client import EmbeddingClient


def _client(handler, api_key="test-key", dimensions=4):
    return EmbeddingClient(
        api_key=api_key,
        model="gemini-embedding-001",
        dimensions=dimensions,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(embedding_client, "BASE_BACKOFF", 0.0)


@pytest.mark.anyio
async def test_embed_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.url.params.get("key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 0.3, 0.4]}})

    client = _client(handler)
    vector = await client.embed("Movies I loved:\n- Inception")
    await client.close()

    assert vector == [0.1, 0.2, 0.3, 0.4]
    assert seen["path"].endswith("/models/gemini-embedding-001:embedContent")
    assert seen["key"] == "test-key"
    assert seen["body"]["content"]["parts"][0]["text"].startswith("Movies I loved:")
    assert seen["body"]["output_dimensionality"] == 4


@pytest.mark.anyio
async def test_rate_limit_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, headers={"Retry-After": "12"})

    with pytest.raises(RateLimited) as exc_info:
        await _client(handler).embed("text")

    assert len(calls) == 1
    assert exc_info.value.retry_after == 12


@pytest.mark.anyio
async def test_server_errors_retried_then_unavailable():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(EmbeddingUnavailable):
        await _client(handler).embed("text")

    assert len(calls) == embedding_client.MAX_RETRIES


@pytest.mark.anyio
async def test_recovers_after_transient_error():
    responses = [
        httpx.Response(500),
        httpx.Response(200, json={"embedding": {"values": [1, 0, 0, 0]}}),
    ]

    vector = await _client(lambda request: responses.pop(0)).embed("text")

    assert vector == [1.0, 0.0, 0.0, 0.0]


@pytest.mark.anyio
async def test_transport_error_retried():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(EmbeddingUnavailable):
        await _client(handler).embed("text")


@pytest.mark.anyio
async def test_client_error_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": {"message": "bad"}})

    with pytest.raises(EmbeddingUnavailable):
        await _client(handler).embed("text")
    assert len(calls) == 1


@pytest.mark.anyio
@pytest.mark.parametrize("payload", [{}, {"embedding": {"values": []}}, {"embedding": {"values": [1, 2]}}])
async def test_bad_vector_is_unavailable(payload):
    with pytest.raises(EmbeddingUnavailable):
        await _client(lambda request: httpx.Response(200, json=payload)).embed("text")


@pytest.mark.anyio
async def test_missing_api_key():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(EmbeddingUnavailable):
        await _client(handler, api_key=None).embed("text")

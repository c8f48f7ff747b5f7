"""Tests for the HTTP inference client, using httpx.MockTransport."""
import json

import httpx
import pytest

from patentmap.services.inference import HttpInferenceClient, InferenceEngineError


def _client(handler) -> HttpInferenceClient:
    return HttpInferenceClient(
        base_url="http://inference.test/",
        model_type="molecular",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_embed_posts_structure():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": [0.1, 0.2, 0.3], "confidence": 0.8})

    result = await _client(handler).embed(" CCO ")

    assert seen["url"] == "http://inference.test/v1/embeddings"
    assert seen["body"] == {"smiles": "CCO", "model_type": "molecular"}
    assert result.vector == [0.1, 0.2, 0.3]
    assert result.confidence == 0.8


@pytest.mark.asyncio
async def test_embed_rejects_empty_structure():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(InferenceEngineError):
        await _client(handler).embed("  ")


@pytest.mark.asyncio
async def test_embed_missing_vector():
    with pytest.raises(InferenceEngineError, match="embedding"):
        await _client(lambda r: httpx.Response(200, json={})).embed("CCO")


@pytest.mark.asyncio
async def test_non_200_is_error():
    with pytest.raises(InferenceEngineError, match="503"):
        await _client(lambda r: httpx.Response(503, text="busy")).embed("CCO")


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(InferenceEngineError):
        await _client(handler).reduce([[1.0, 2.0]], "pca", 2)


@pytest.mark.asyncio
async def test_reduce_round_trip():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/v1/reduce"
        assert body["algorithm"] == "tsne"
        assert body["perplexity"] == 30.0
        return httpx.Response(200, json={"reduced": [[v[0], v[1]] for v in body["vectors"]]})

    reduced = await _client(handler).reduce([[1, 2, 3], [4, 5, 6]], "tsne", 2, perplexity=30.0)
    assert reduced == [[1.0, 2.0], [4.0, 5.0]]


@pytest.mark.asyncio
async def test_check_health():
    assert await _client(lambda r: httpx.Response(200)).check_health() is True
    assert await _client(lambda r: httpx.Response(500)).check_health() is False

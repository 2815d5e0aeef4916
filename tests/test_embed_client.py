import json

import httpx
import pytest

from conftest import make_helper_config
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.errors import ProviderError


def _openai_response(vector: list[float]) -> httpx.Response:
    return httpx.Response(200, json={"data": [{"index": 0, "embedding": vector}]})


async def _booted_openai(handler, **overrides) -> EmbedClientOpenai:
    client = EmbedClientOpenai(helper_config=make_helper_config(EMBED_OPENAI_API_KEY="sk-test", **overrides))
    await client.boot(transport=httpx.MockTransport(handler))
    return client


@pytest.mark.asyncio
async def test_short_text_is_embedded_unchanged_in_one_call():
    inputs = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/embeddings"
        assert request.headers["Authorization"] == "Bearer sk-test"
        inputs.append(json.loads(request.content)["input"])
        return _openai_response([0.1, 0.2, 0.3])

    client = await _booted_openai(handler)
    assert await client.do_embed_text("hello world") == [0.1, 0.2, 0.3]
    assert inputs == [["hello world"]]
    await client.close()


@pytest.mark.asyncio
async def test_blank_text_is_not_sent():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = await _booted_openai(handler)
    assert await client.do_embed_text("   ") == []
    assert await client.do_embed_text(None) == []
    await client.close()


@pytest.mark.asyncio
async def test_length_exceeded_triggers_one_emergency_retry():
    inputs = []

    def handler(request: httpx.Request) -> httpx.Response:
        inputs.append(json.loads(request.content)["input"][0])
        if len(inputs) == 1:
            return httpx.Response(400, text="This model's maximum context length is 8192 tokens")
        return _openai_response([1.0, 0.0])

    client = await _booted_openai(handler, EMBED_MODEL_MAX_TOKENS=20)
    assert await client.do_embed_text("word " * 40) == [1.0, 0.0]
    assert len(inputs) == 2
    assert len(inputs[1]) < len(inputs[0])
    assert inputs[1].endswith("...")
    await client.close()


@pytest.mark.asyncio
async def test_repeated_length_exceeded_raises_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="maximum context length exceeded")

    client = await _booted_openai(handler)
    with pytest.raises(ProviderError):
        await client.do_embed_text("hello world")
    await client.close()


@pytest.mark.asyncio
async def test_server_error_raises_provider_error_with_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="overloaded")

    client = await _booted_openai(handler)
    with pytest.raises(ProviderError) as excinfo:
        await client.do_embed_text("hello world")
    assert excinfo.value.status_code == 503
    await client.close()


@pytest.mark.asyncio
async def test_request_before_boot_raises_provider_error():
    client = EmbedClientOpenai(helper_config=make_helper_config(EMBED_OPENAI_API_KEY="sk-test"))
    with pytest.raises(ProviderError):
        await client.do_embed_text("hello world")


@pytest.mark.asyncio
async def test_ollama_embeddings_are_read_from_embed_endpoint():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/embed"
        body = json.loads(request.content)
        assert body["model"] == "nomic-embed-text"
        return httpx.Response(200, json={"embeddings": [[0.5, 0.5]]})

    client = EmbedClientOllama(helper_config=make_helper_config(EMBED_OLLAMA_BASE_URL="http://ollama:11434"))
    await client.boot(transport=httpx.MockTransport(handler))
    assert await client.do_embed_text("hello") == [0.5, 0.5]
    await client.close()


def test_truncate_to_token_limit_breaks_at_word_boundary():
    text = "alpha beta gamma delta " * 20
    truncated = EmbedClientInterface.truncate_to_token_limit(text, max_tokens=10)
    assert truncated.endswith("...")
    assert len(truncated) <= 32 + 3
    assert not truncated[:-3].endswith(" ")


def test_truncate_to_token_limit_keeps_short_text():
    assert EmbedClientInterface.truncate_to_token_limit("hello world", max_tokens=8000) == "hello world"

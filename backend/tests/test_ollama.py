"""Tests for the Ollama adapter against a mocked HTTP transport"""
import json

import httpx
import pytest

from lesson_relay.backends import (
    BackendRequestError,
    BackendUnavailableError,
    MalformedResponseError,
    OllamaBackend,
)
from lesson_relay.prompts import lesson_prompt
from lesson_relay.sse import relay_fragments

from conftest import parse_sse


BASE_URL = "http://ollama.test:11434"


def make_backend(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaBackend(BASE_URL, "llama3.2:latest", client=client, **kwargs)


def ndjson(*lines):
    return ("\n".join(lines) + "\n").encode()


async def collect(agen):
    return [item async for item in agen]


@pytest.mark.asyncio
async def test_complete_sends_composite_prompt():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "T", "done": True})

    backend = make_backend(handler)
    text = await backend.complete(lesson_prompt("Rivers"), model="mistral")
    await backend.aclose()

    assert text == "T"
    assert seen["url"] == f"{BASE_URL}/api/generate"
    assert seen["body"]["model"] == "mistral"
    assert seen["body"]["stream"] is False
    assert seen["body"]["prompt"] == lesson_prompt("Rivers").text
    assert seen["body"]["options"] == {"temperature": 0.7, "top_p": 0.9, "num_predict": 2048}


@pytest.mark.asyncio
async def test_complete_uses_default_model():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "T"})

    backend = make_backend(handler)
    await backend.complete(lesson_prompt("x"))
    await backend.aclose()
    assert seen["body"]["model"] == "llama3.2:latest"


@pytest.mark.asyncio
async def test_complete_connection_refused():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    backend = make_backend(handler)
    with pytest.raises(BackendUnavailableError) as exc_info:
        await backend.complete(lesson_prompt("x"))
    await backend.aclose()
    assert "Cannot connect to Ollama" in str(exc_info.value)
    assert BASE_URL in str(exc_info.value)


@pytest.mark.asyncio
async def test_complete_http_error():
    backend = make_backend(lambda request: httpx.Response(404, text='{"error":"model not found"}'))
    with pytest.raises(BackendRequestError) as exc_info:
        await backend.complete(lesson_prompt("x"))
    await backend.aclose()
    assert "HTTP 404" in str(exc_info.value)


@pytest.mark.asyncio
async def test_complete_malformed_response():
    backend = make_backend(lambda request: httpx.Response(200, json={"unexpected": True}))
    with pytest.raises(MalformedResponseError):
        await backend.complete(lesson_prompt("x"))
    await backend.aclose()


@pytest.mark.asyncio
async def test_stream_skips_malformed_chunks():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=ndjson(
            '{"response":"A"}',
            "not-json",
            '{"response":"B","done":true}',
        ))

    backend = make_backend(handler)
    fragments = await collect(backend.stream(lesson_prompt("x")))
    assert fragments == ["A", "B"]
    assert seen["body"]["stream"] is True

    events = parse_sse("".join(await collect(relay_fragments(backend.stream(lesson_prompt("x"))))))
    await backend.aclose()
    assert events == [
        ("message", {"content": "A"}),
        ("message", {"content": "B"}),
        ("end", {"message": "Stream completed"}),
    ]


@pytest.mark.asyncio
async def test_stream_stops_at_done():
    backend = make_backend(lambda request: httpx.Response(200, content=ndjson(
        '{"response":"A","done":true}',
        '{"response":"ignored"}',
    )))
    assert await collect(backend.stream(lesson_prompt("x"))) == ["A"]
    await backend.aclose()


@pytest.mark.asyncio
async def test_stream_error_record_raises():
    backend = make_backend(lambda request: httpx.Response(200, content=ndjson(
        '{"response":"A"}',
        '{"error":"out of memory"}',
    )))
    agen = backend.stream(lesson_prompt("x"))
    assert await agen.__anext__() == "A"
    with pytest.raises(BackendRequestError) as exc_info:
        await agen.__anext__()
    await backend.aclose()
    assert "out of memory" in str(exc_info.value)


@pytest.mark.asyncio
async def test_stream_connection_refused():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    backend = make_backend(handler)
    # Nothing is sent until the stream is iterated
    agen = backend.stream(lesson_prompt("x"))
    with pytest.raises(BackendUnavailableError):
        await collect(agen)
    await backend.aclose()


@pytest.mark.asyncio
async def test_stream_http_error_includes_body():
    backend = make_backend(lambda request: httpx.Response(500, text="model crashed"))
    with pytest.raises(BackendRequestError) as exc_info:
        await collect(backend.stream(lesson_prompt("x")))
    await backend.aclose()
    assert "HTTP 500" in str(exc_info.value)
    assert "model crashed" in str(exc_info.value)


@pytest.mark.asyncio
async def test_list_models():
    backend = make_backend(lambda request: httpx.Response(200, json={"models": [{"name": "llama3.2:latest"}]}))
    assert await backend.list_models() == [{"name": "llama3.2:latest"}]
    await backend.aclose()


@pytest.mark.asyncio
async def test_pull_model_waits_for_completion():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": "success"})

    backend = make_backend(handler)
    assert backend.supports_pull
    assert backend.pull_blocking
    assert await backend.pull_model("mistral") == {"status": "success"}
    await backend.aclose()
    assert seen["url"] == f"{BASE_URL}/api/pull"
    assert seen["body"] == {"model": "mistral", "stream": False}


@pytest.mark.asyncio
async def test_pull_model_error_payload():
    backend = make_backend(lambda request: httpx.Response(200, json={"error": "pull model manifest: file does not exist"}))
    with pytest.raises(BackendRequestError):
        await backend.pull_model("nope")
    await backend.aclose()


def test_pull_mode_is_configurable():
    backend = make_backend(lambda request: httpx.Response(200), pull_blocking=False)
    assert backend.pull_blocking is False
    assert backend.supports_pull

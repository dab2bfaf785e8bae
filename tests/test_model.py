"""Tests for the Gemini model client."""

import json

import httpx
import pytest

from aichat_preview.core import ChatMessage
from aichat_preview.errors import ModelProviderError
from aichat_preview.model import CONTEXT_MESSAGES, GeminiClient


def candidate(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_client(handler):
    return GeminiClient(api_key="test-key", model="gemini-test", transport=httpx.MockTransport(handler))


def test_missing_api_key_is_configuration_error(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(ModelProviderError) as exc_info:
        GeminiClient()
    assert exc_info.value.configured is False


@pytest.mark.asyncio
async def test_generate_sends_recent_context():
    requests = []

    def handler(request: httpx.Request):
        requests.append(request)
        return httpx.Response(200, json=candidate("Hello"))

    history = [ChatMessage("user" if i % 2 == 0 else "model", f"m{i}") for i in range(14)]
    text = await make_client(handler).generate(history, "be brief")

    assert text == "Hello"
    request = requests[0]
    assert request.url.path.endswith("/gemini-test:generateContent")
    assert request.url.params["key"] == "test-key"
    body = json.loads(request.content)
    assert len(body["contents"]) == CONTEXT_MESSAGES
    assert body["contents"][-1] == {"role": "model", "parts": [{"text": "m13"}]}
    assert body["systemInstruction"]["parts"][0]["text"] == "be brief"


@pytest.mark.asyncio
async def test_generate_error_status():
    client = make_client(lambda request: httpx.Response(429, text="quota"))
    with pytest.raises(ModelProviderError):
        await client.generate([ChatMessage("user", "hi")])


@pytest.mark.asyncio
async def test_generate_empty_candidates():
    client = make_client(lambda request: httpx.Response(200, json={"candidates": []}))
    assert await client.generate([ChatMessage("user", "hi")]) == ""


@pytest.mark.asyncio
async def test_stream_parses_sse_events():
    events = [
        "data: " + json.dumps(candidate("Hel")),
        "",
        "data: not json",
        "",
        "data: " + json.dumps(candidate("lo")),
        "",
        ": keep-alive",
        "data: " + json.dumps({"candidates": [{"content": {"parts": [{}]}}]}),
        "",
    ]

    def handler(request: httpx.Request):
        assert request.url.params["alt"] == "sse"
        assert request.url.path.endswith(":streamGenerateContent")
        return httpx.Response(200, content="\n".join(events).encode("utf-8"))

    chunks = [c async for c in make_client(handler).stream([ChatMessage("user", "hi")])]
    assert chunks == ["Hel", "lo"]


@pytest.mark.asyncio
async def test_stream_error_status():
    client = make_client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(ModelProviderError):
        async for _ in client.stream([ChatMessage("user", "hi")]):
            pass

import json

import httpx
import pytest

from placement.gemini_client import GeminiClient
from placement.settings import settings


def _gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.mark.asyncio
async def test_generate_returns_first_candidate_text():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_reply('{"question": "q"}'))

    client = GeminiClient(api_key="test-key", model="gemini-test", transport=httpx.MockTransport(handler))
    try:
        text = await client.generate("hello", json_output=True)
    finally:
        await client.aclose()

    assert text == '{"question": "q"}'
    assert "gemini-test:generateContent" in seen["url"]
    assert "key=test-key" in seen["url"]
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "hello"
    assert seen["body"]["generationConfig"] == {"responseMimeType": "application/json"}


@pytest.mark.asyncio
async def test_http_error_is_raised_without_fallback():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"error": "overloaded"}))
    client = GeminiClient(api_key="test-key", transport=transport)
    try:
        with pytest.raises(httpx.HTTPStatusError):
            await client.generate("hello")
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_malformed_body_is_an_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []}))
    client = GeminiClient(api_key="test-key", transport=transport)
    try:
        with pytest.raises(RuntimeError, match="Unexpected Gemini response"):
            await client.generate("hello")
    finally:
        await client.aclose()


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError):
        GeminiClient(api_key="")


def test_attempts_split_the_deadline_when_openrouter_is_configured(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "or-key")
    client = GeminiClient(api_key="test-key", timeout=20.0)
    assert client.attempt_timeout == 10.0

    monkeypatch.setattr(settings, "openrouter_api_key", None)
    client = GeminiClient(api_key="test-key", timeout=20.0)
    assert client.attempt_timeout == 20.0


@pytest.mark.asyncio
async def test_gemini_timeout_falls_through_to_openrouter(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "or-key")

    def handler(request: httpx.Request) -> httpx.Response:
        if "generateContent" in str(request.url):
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "from openrouter"}}]})

    client = GeminiClient(api_key="test-key", timeout=4.0, transport=httpx.MockTransport(handler))
    try:
        assert await client.generate("hello") == "from openrouter"
    finally:
        await client.aclose()

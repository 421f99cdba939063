"""Tests for the completion providers."""

from __future__ import annotations

import json

import httpx
import pytest

from chat_gateway.errors import ProviderConfigError, UpstreamError
from chat_gateway.providers import MockProvider, OpenAICompatProvider, build_provider
from tests.helpers import collect, make_settings


def sse_body(*events: str) -> str:
    return "".join(f"{e}\n\n" for e in events)


def delta(text: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]})


def provider_with(handler) -> OpenAICompatProvider:
    return OpenAICompatProvider(
        base_url="https://example.test/api/",
        api_key="sk-test",
        transport=httpx.MockTransport(handler),
    )


class TestOpenAICompatProvider:
    def test_requires_api_key(self):
        with pytest.raises(ProviderConfigError):
            OpenAICompatProvider(base_url="https://example.test", api_key="")

    @pytest.mark.asyncio
    async def test_sends_streaming_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, text=sse_body("data: [DONE]"))

        messages = [{"role": "user", "content": "hi"}]
        await collect(provider_with(handler).stream_chat("m/1", messages))

        assert seen["url"] == "https://example.test/api/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"] == {"model": "m/1", "messages": messages, "stream": True}

    @pytest.mark.asyncio
    async def test_yields_delta_content_until_done(self):
        body = sse_body(
            ": OPENROUTER PROCESSING",
            delta("Hel"),
            "data: {not json",
            "data: " + json.dumps({"choices": [{"delta": {"role": "assistant"}}]}),
            delta("lo"),
            "data: [DONE]",
            delta("ignored"),
        )
        provider = provider_with(lambda request: httpx.Response(200, text=body))

        chunks = await collect(provider.stream_chat("m/1", []))

        assert chunks == ["Hel", "lo"]

    @pytest.mark.asyncio
    async def test_http_error_raises_upstream_error(self):
        provider = provider_with(lambda request: httpx.Response(401, json={"error": "bad key"}))

        with pytest.raises(UpstreamError) as exc_info:
            await collect(provider.stream_chat("m/1", []))

        assert exc_info.value.status_code == 401
        assert "401" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_in_stream_error_object_raises(self):
        body = sse_body(delta("partial"), "data: " + json.dumps({"error": {"message": "overloaded"}}))
        provider = provider_with(lambda request: httpx.Response(200, text=body))

        received = []
        with pytest.raises(UpstreamError, match="overloaded"):
            async for chunk in provider.stream_chat("m/1", []):
                received.append(chunk)

        assert received == ["partial"]

    @pytest.mark.asyncio
    async def test_extra_headers_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["x-title"] = request.headers.get("x-title")
            seen["authorization"] = request.headers.get("authorization")
            return httpx.Response(200, text=sse_body("data: [DONE]"))

        provider = OpenAICompatProvider(
            base_url="https://example.test/api",
            api_key="sk-test",
            transport=httpx.MockTransport(handler),
            extra_headers={"X-Title": "Example Chat"},
        )
        await collect(provider.stream_chat("m/1", []))

        assert seen["x-title"] == "Example Chat"
        assert seen["authorization"] == "Bearer sk-test"


class TestMockProvider:
    @pytest.mark.asyncio
    async def test_echoes_last_user_message(self):
        provider = MockProvider(delay=0)
        messages = [{"role": "user", "content": "first"}, {"role": "user", "content": "second"}]

        text = "".join(await collect(provider.stream_chat("m/1", messages)))

        assert "second" in text
        assert "m/1" in text

    @pytest.mark.asyncio
    async def test_fail_after_all_fragments(self):
        provider = MockProvider(fragments=["a"], fail_after=1, delay=0)

        received = []
        with pytest.raises(RuntimeError):
            async for chunk in provider.stream_chat("m/1", []):
                received.append(chunk)

        assert received == ["a"]


class TestBuildProvider:
    def test_mock(self):
        assert isinstance(build_provider(make_settings(provider="mock")), MockProvider)

    def test_openrouter(self):
        provider = build_provider(make_settings(provider="openrouter", openrouter_api_key="sk-1"))

        assert isinstance(provider, OpenAICompatProvider)
        assert provider.base_url == "https://openrouter.ai/api"

    def test_openrouter_without_key(self):
        with pytest.raises(ProviderConfigError):
            build_provider(make_settings(provider="openrouter", openrouter_api_key=""))

    def test_openrouter_attribution_headers(self):
        provider = build_provider(
            make_settings(
                provider="openrouter",
                openrouter_api_key="sk-1",
                openrouter_referer="https://chat.example.com",
                openrouter_title="Example Chat",
            )
        )

        assert provider.extra_headers == {
            "HTTP-Referer": "https://chat.example.com",
            "X-Title": "Example Chat",
        }

    def test_openrouter_without_attribution(self):
        provider = build_provider(make_settings(provider="openrouter", openrouter_api_key="sk-1"))

        assert provider.extra_headers == {}

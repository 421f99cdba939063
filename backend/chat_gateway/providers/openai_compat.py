import json
import logging
import httpx
from typing import AsyncIterator, List, Dict, Optional

from ..config import Settings
from ..errors import ProviderConfigError, UpstreamError
from .base import Provider
from .mock import MockProvider

logger = logging.getLogger(__name__)


class OpenAICompatProvider(Provider):
    """
    Works with OpenAI-compatible Chat Completions (OpenRouter by default):
    POST {BASE_URL}/v1/chat/completions
    with {model, messages, stream: true}
    and receives SSE-like stream: 'data: {...}\n\n'
    """
    def __init__(
        self,
        base_url: str,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ):
        if not api_key:
            raise ProviderConfigError("OPEN_ROUTER_API_KEY is not configured")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.transport = transport
        self.extra_headers = extra_headers or {}

    async def stream_chat(self, model: str, messages: List[Dict]) -> AsyncIterator[str]:
        url = f"{self.base_url}/v1/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            **self.extra_headers,
        }
        payload = {
            "model": model,
            "messages": messages,
            "stream": True,
        }

        async with httpx.AsyncClient(timeout=None, transport=self.transport) as client:
            async with client.stream("POST", url, headers=headers, json=payload) as r:
                if r.is_error:
                    body = (await r.aread()).decode("utf-8", errors="replace")
                    raise UpstreamError(
                        f"Provider returned HTTP {r.status_code}: {body[:200]}",
                        status_code=r.status_code,
                    )
                async for line in r.aiter_lines():
                    # blank separators and ': keep-alive' comments
                    if not line or not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    try:
                        obj = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed stream line: %r", data)
                        continue
                    if not isinstance(obj, dict):
                        continue
                    if obj.get("error"):
                        err = obj["error"]
                        message = err.get("message") if isinstance(err, dict) else str(err)
                        raise UpstreamError(f"Provider stream error: {message}")
                    # OpenAI stream format: choices[0].delta.content
                    choices = obj.get("choices") or [{}]
                    chunk = choices[0].get("delta", {}).get("content")
                    if chunk:
                        yield chunk


def build_provider(settings: Settings) -> Provider:
    if settings.provider == "mock":
        return MockProvider()
    # optional attribution headers for the OpenRouter dashboard
    extra_headers = {}
    if settings.openrouter_referer:
        extra_headers["HTTP-Referer"] = settings.openrouter_referer
    if settings.openrouter_title:
        extra_headers["X-Title"] = settings.openrouter_title
    return OpenAICompatProvider(
        base_url=settings.openrouter_base_url,
        api_key=settings.openrouter_api_key.strip(),
        extra_headers=extra_headers,
    )

"""Shared test helpers (settings and async iteration)."""

from __future__ import annotations

from typing import AsyncIterator, Iterable

from chat_gateway.config import Settings


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment, defaulting to the mock provider
    with smoothing disabled so tests run without delays."""
    values = {
        "provider": "mock",
        "openrouter_api_key": "",
        "openrouter_base_url": "https://openrouter.ai/api",
        "openrouter_referer": "",
        "openrouter_title": "",
        "model": "test/model",
        "system_prompt": "You are a test assistant.",
        "cors_origins": ["*"],
        "validation_mode": "strict",
        "framing": "sse",
        "smoothing": "none",
        "smoothing_delay_ms": 0,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


async def collect(iterator: AsyncIterator[str]) -> list[str]:
    return [item async for item in iterator]


async def aiter_of(items: Iterable[str]) -> AsyncIterator[str]:
    for item in items:
        yield item

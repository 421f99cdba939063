"""Shared test fixtures and configuration."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from chat_gateway.main import create_app, get_provider_factory
from chat_gateway.providers.mock import MockProvider
from tests.helpers import make_settings


@pytest.fixture
def build_client():
    """Return a factory creating a TestClient, optionally backed by a scripted provider."""

    def _build(provider: MockProvider | None = None, **overrides):
        app = create_app(make_settings(**overrides))
        if provider is not None:
            app.dependency_overrides[get_provider_factory] = lambda: (lambda: provider)
        return TestClient(app)

    return _build


@pytest.fixture
def user_turn() -> dict:
    return {"messages": [{"role": "user", "content": "hi"}]}

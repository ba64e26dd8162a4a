"""Shared fixtures: a scripted agent backend and a delay-free config."""

from __future__ import annotations

from datetime import timedelta

import pytest

from chatrelay.configs.config import AppConfig
from chatrelay.configs.system import AgentConfig, CacheConfig, RelayConfig, ThirdPartyConfig
from fakes import BACKEND_URL, FakeBackend


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http_client(backend):
    return backend.client()


@pytest.fixture
def app_config() -> AppConfig:
    """Config with no relay delays, pointed at the fake backend."""
    return AppConfig().model_copy(
        update={
            "third_party": ThirdPartyConfig(agent_backend_url=BACKEND_URL),
            "agent": AgentConfig(),
            "relay": RelayConfig(
                typing_delay=timedelta(0), response_delay=timedelta(0)
            ),
            "cache": CacheConfig(),
        }
    )


@pytest.fixture
def client(app_config, backend):
    """``TestClient`` over the real app, wired to the fake backend.

    Entering the client runs the lifespan, so every test gets a fresh
    store, agent client and relay.
    """
    from fastapi.testclient import TestClient

    from chatrelay.app import app
    from chatrelay.configs.config import get_app_config
    from chatrelay.infra.http_client import build_http_client

    async def _http_client():
        async with backend.client() as http:
            yield http

    app.dependency_overrides[get_app_config] = lambda: app_config
    app.dependency_overrides[build_http_client] = _http_client
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()

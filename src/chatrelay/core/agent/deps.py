"""Agent client lifespan builder and per-request accessor."""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI, Request

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.infra.http_client import build_http_client
from chatrelay.infra.lifespan import get_app

from .cache import MetadataCache
from .client import AgentClient

logger = logging.getLogger(__name__)


async def build_agent_client(
    app: Annotated[FastAPI, Depends(get_app)],
    http: Annotated[httpx.AsyncClient, Depends(build_http_client)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[AgentClient, None]:
    """Create the ``AgentClient`` with a fresh metadata cache."""
    client = AgentClient(
        http=http,
        third_party=config.third_party,
        agent=config.agent,
        cache=MetadataCache(ttl=config.cache.metadata_ttl),
    )
    logger.info(
        "Agent client ready (timeout=%s, metadata_ttl=%s)",
        config.agent.request_timeout,
        config.cache.metadata_ttl,
    )
    app.state.agent_client = client
    yield client
    client.invalidate_cache()


def get_agent_client(request: Request) -> AgentClient:
    """Return the ``AgentClient`` stored on ``app.state`` by the lifespan."""
    return request.app.state.agent_client

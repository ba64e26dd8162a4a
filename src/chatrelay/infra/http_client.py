"""Shared outbound HTTP client, built as a lifespan dependency.

One ``httpx.AsyncClient`` per application, pointed at the agent backend.
Per-call timeouts are passed by the caller; the client-level timeout is
only an upper bound.  Tests override ``build_http_client`` to inject an
``httpx.MockTransport``.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends

from chatrelay.configs.config import AppConfig, get_app_config

logger = logging.getLogger(__name__)


async def build_http_client(
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create the shared client; close it on shutdown."""
    timeout = max(
        config.agent.request_timeout, config.agent.lookup_timeout
    ).total_seconds()
    client = httpx.AsyncClient(
        base_url=config.third_party.agent_backend_url,
        timeout=timeout,
    )
    logger.info(
        "Agent backend client ready (base_url=%s)",
        config.third_party.agent_backend_url,
    )
    try:
        yield client
    finally:
        await client.aclose()

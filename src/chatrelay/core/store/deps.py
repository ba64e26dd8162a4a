"""Store lifespan builder and per-request accessor."""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.infra.lifespan import get_app

from .base import ConversationStore
from .memory import InMemoryConversationStore
from .models import AgentCreate

logger = logging.getLogger(__name__)


async def build_store(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[ConversationStore, None]:
    """Create the in-memory store and seed the default presence agent."""
    store = InMemoryConversationStore()
    agent = await store.create_agent(
        AgentCreate(name=config.agent.service_name, is_online=True)
    )
    logger.info("Conversation store ready (default agent=%s)", agent.id)
    app.state.store = store
    yield store


def get_store(request: Request) -> ConversationStore:
    """Return the store attached to ``app.state`` by the lifespan."""
    return request.app.state.store

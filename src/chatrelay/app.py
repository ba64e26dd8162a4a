"""FastAPI application entry point.

Run with ``uvicorn chatrelay.app:app``.
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI

from chatrelay.api.agent import router as agent_router
from chatrelay.api.conversations import router as conversations_router
from chatrelay.api.exceptions import register_exception_handlers
from chatrelay.api.health import router as health_router
from chatrelay.api.ws import router as ws_router
from chatrelay.configs.config import get_app_config
from chatrelay.core.metrics import instrument_app
from chatrelay.core.relay import ConnectionRelay, build_relay
from chatrelay.infra.lifespan import inject
from chatrelay.infra.logging import setup_logging
from chatrelay.infra.telemetry import init_telemetry

logger = logging.getLogger(__name__)


@inject
async def lifespan(
    app: FastAPI,
    relay: Annotated[ConnectionRelay, Depends(build_relay)],
) -> AsyncGenerator[None, None]:
    """Startup/shutdown; ``build_relay`` pulls in every other builder."""
    logger.info("Chat relay started")
    yield
    logger.info("Shutting down chat relay (%d connections)", relay.connection_count)


def get_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_app_config()
    setup_logging(config.logging)

    app = FastAPI(
        title="Chat Relay",
        description="Real-time chat relay with an automated responder",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(conversations_router)
    app.include_router(agent_router)
    app.include_router(ws_router)
    app.include_router(health_router)

    # Middleware must be attached before the app starts serving.
    register_exception_handlers(app)
    instrument_app(app, config.tracing)
    init_telemetry(app, config.tracing)

    return app


app = get_app()

"""WebSocket endpoint feeding inbound frames to the connection relay."""

import logging

from fastapi import APIRouter, WebSocket

from .deps import RelayDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])


@router.websocket("/ws")
async def relay_socket(websocket: WebSocket, relay: RelayDep) -> None:
    """One reader loop per client; writes go through the connection outbox."""
    await websocket.accept()
    connection = relay.connect(websocket.send_text)
    try:
        async for raw in websocket.iter_text():
            await relay.handle(connection, raw)
    finally:
        await relay.disconnect(connection)
        logger.debug("WebSocket %s closed", connection.id)

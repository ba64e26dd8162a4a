"""One live client connection and its ordered outbox."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Literal

from chatrelay.infra.id_utils import PREFIX_CONNECTION, generate_id

logger = logging.getLogger(__name__)

SendFn = Callable[[str], Awaitable[None]]
ConnectionState = Literal["connected", "joined", "closed"]


class Connection:
    """A registered transport plus the conversation it has joined.

    Envelopes are queued with ``deliver`` (never blocks) and written by a
    single writer task in FIFO order, so a recipient sees envelopes in
    exactly the order the relay enqueued them.

    Usage::

        connection = Connection(websocket.send_text)
        connection.start()
        connection.deliver(envelope.to_json())
        ...
        await connection.close()
    """

    def __init__(self, send: SendFn) -> None:
        self.id = generate_id(PREFIX_CONNECTION)
        self.conversation_id: str | None = None
        self._send = send
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._writer: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def state(self) -> ConnectionState:
        if self._closed:
            return "closed"
        return "joined" if self.conversation_id is not None else "connected"

    def start(self) -> None:
        """Spawn the writer task (requires a running event loop)."""
        if self._writer is None:
            self._writer = asyncio.create_task(
                self._write_outbox(), name=f"relay-writer-{self.id}"
            )

    def deliver(self, payload: str) -> bool:
        """Queue *payload*; returns ``False`` once the connection is closed."""
        if self._closed:
            return False
        self._outbox.put_nowait(payload)
        return True

    async def flush(self) -> None:
        """Wait until everything queued so far has been written (or dropped)."""
        await self._outbox.join()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
        # Release anyone waiting in flush().
        while not self._outbox.empty():
            self._outbox.get_nowait()
            self._outbox.task_done()

    async def _write_outbox(self) -> None:
        while True:
            payload = await self._outbox.get()
            try:
                await self._send(payload)
            except Exception:
                logger.debug(
                    "Dropping envelope for %s: transport send failed",
                    self.id,
                    exc_info=True,
                )
            finally:
                self._outbox.task_done()

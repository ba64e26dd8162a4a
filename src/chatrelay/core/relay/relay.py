"""ConnectionRelay: multiplexes live connections by conversation.

Per connection: ``connected`` → ``joined(conversation)`` → ``closed``.
Joining is advisory routing only (no existence check) and re-joining
replaces the previous conversation.

Fan-out is synchronous: ``broadcast`` enqueues onto every recipient's
outbox without awaiting, so within one conversation all recipients
observe envelopes in the order the relay produced them.

A user message schedules one background task that broadcasts the agent
typing indicator after ``typing_delay``, runs the response pipeline
``response_delay`` after the send, then broadcasts typing-stopped and
the agent message.  The task only carries the conversation id; it
resolves recipients when it fires, so a conversation left without
connections simply receives nothing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Annotated, Any

from fastapi import Depends, FastAPI
from pydantic import ValidationError
from starlette.requests import HTTPConnection

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.core.exceptions import ChatRelayError, ValidationFailed
from chatrelay.core.metrics import (
    RELAY_BROADCASTS_TOTAL,
    RELAY_CONNECTIONS_ACTIVE,
    RELAY_DELIVERIES_TOTAL,
    RELAY_REJECTED_ENVELOPES_TOTAL,
)
from chatrelay.core.pipeline import ResponsePipeline, build_pipeline
from chatrelay.core.store import (
    SENDER_AGENT,
    SENDER_USER,
    ConversationStore,
    Message,
    MessageCreate,
    build_store,
)
from chatrelay.infra.lifespan import get_app

from .connection import Connection, SendFn
from .models import (
    EVENT_JOIN_CONVERSATION,
    EVENT_SEND_MESSAGE,
    EVENT_TYPING,
    EVENT_USER_TYPING,
    InboundEnvelope,
    JoinConversationData,
    OutboundEnvelope,
    SendMessageData,
    TypingData,
    describe_validation_error,
    error_envelope,
    new_message_envelope,
    typing_envelope,
)

logger = logging.getLogger(__name__)


class ConnectionRelay:
    """Registry of live connections plus the message flow between them."""

    def __init__(
        self,
        store: ConversationStore,
        pipeline: ResponsePipeline,
        typing_delay: timedelta = timedelta(milliseconds=500),
        response_delay: timedelta = timedelta(milliseconds=2500),
    ) -> None:
        self._store = store
        self._pipeline = pipeline
        self._typing_delay = typing_delay.total_seconds()
        self._response_delay = response_delay.total_seconds()
        self._connections: dict[str, Connection] = {}
        self._pending: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def connect(self, send: SendFn) -> Connection:
        """Register a new transport in state ``connected``."""
        connection = Connection(send)
        connection.start()
        self._connections[connection.id] = connection
        RELAY_CONNECTIONS_ACTIVE.inc()
        logger.debug("Connection %s registered", connection.id)
        return connection

    async def disconnect(self, connection: Connection) -> None:
        """Unregister; nothing is broadcast."""
        if self._connections.pop(connection.id, None) is None:
            return
        RELAY_CONNECTIONS_ACTIVE.dec()
        await connection.close()
        logger.debug("Connection %s removed", connection.id)

    def join(self, connection: Connection, conversation_id: str) -> None:
        connection.conversation_id = conversation_id
        logger.debug("Connection %s joined %s", connection.id, conversation_id)

    def recipients(
        self, conversation_id: str, exclude: Connection | None = None
    ) -> list[Connection]:
        return [
            c
            for c in self._connections.values()
            if c.conversation_id == conversation_id and c is not exclude
        ]

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def broadcast(
        self,
        conversation_id: str,
        envelope: OutboundEnvelope,
        exclude: Connection | None = None,
    ) -> int:
        """Enqueue *envelope* for every connection joined to the conversation.

        Returns the number of recipients; zero is not an error.
        """
        payload = envelope.to_json()
        delivered = sum(
            1
            for connection in self.recipients(conversation_id, exclude)
            if connection.deliver(payload)
        )
        RELAY_BROADCASTS_TOTAL.labels(event_type=envelope.type).inc()
        RELAY_DELIVERIES_TOTAL.labels(event_type=envelope.type).inc(delivered)
        return delivered

    # ------------------------------------------------------------------
    # Inbound envelopes
    # ------------------------------------------------------------------

    async def handle(self, connection: Connection, raw: str) -> None:
        """Dispatch one raw inbound frame.

        Malformed or unroutable envelopes are answered with an ``error``
        envelope to *connection* only; the connection stays open.
        """
        try:
            try:
                envelope = InboundEnvelope.model_validate_json(raw)
            except ValidationError as exc:
                raise ValidationFailed(describe_validation_error(exc, "envelope")) from exc

            if envelope.type == EVENT_JOIN_CONVERSATION:
                data = _validate(JoinConversationData, envelope.data, envelope.type)
                self.join(connection, data.conversation_id)
            elif envelope.type == EVENT_SEND_MESSAGE:
                data = _validate(SendMessageData, envelope.data, envelope.type)
                await self.send_message(self._target(connection, envelope), data)
            elif envelope.type == EVENT_TYPING:
                self.relay_typing(
                    connection, self._target(connection, envelope), envelope.data
                )
        except ChatRelayError as exc:
            RELAY_REJECTED_ENVELOPES_TOTAL.labels(code=exc.code).inc()
            logger.info("Rejected envelope from %s: %s", connection.id, exc)
            connection.deliver(error_envelope(str(exc), exc.code).to_json())

    async def send_message(self, conversation_id: str, data: SendMessageData) -> Message:
        """Persist, echo to the whole conversation, schedule the agent reply."""
        message = await self._store.create_message(
            MessageCreate(
                conversation_id=conversation_id,
                sender_id=data.sender_id,
                sender_type=data.sender_type,
                content=data.content,
            )
        )
        self.broadcast(conversation_id, new_message_envelope(message))

        if message.sender_type == SENDER_USER:
            sent_at = asyncio.get_running_loop().time()
            self._schedule(self._respond(message, data.access_key, sent_at))
        return message

    def relay_typing(
        self, connection: Connection, conversation_id: str, data: dict[str, Any]
    ) -> int:
        """Forward a client's typing payload verbatim to the other members."""
        _validate(TypingData, data, EVENT_TYPING)
        return self.broadcast(
            conversation_id,
            OutboundEnvelope(
                type=EVENT_USER_TYPING, data=data, conversation_id=conversation_id
            ),
            exclude=connection,
        )

    @staticmethod
    def _target(connection: Connection, envelope: InboundEnvelope) -> str:
        conversation_id = envelope.conversation_id or connection.conversation_id
        if not conversation_id:
            raise ValidationFailed(
                f"'{envelope.type}' needs a conversationId or a joined conversation."
            )
        return conversation_id

    # ------------------------------------------------------------------
    # Simulated typing + agent reply
    # ------------------------------------------------------------------

    async def _respond(
        self, message: Message, credential: str | None, sent_at: float
    ) -> None:
        loop = asyncio.get_running_loop()
        conversation_id = message.conversation_id

        await asyncio.sleep(self._typing_delay)
        self.broadcast(conversation_id, typing_envelope(conversation_id, True, SENDER_AGENT))

        await asyncio.sleep(max(0.0, sent_at + self._response_delay - loop.time()))
        reply = await self._pipeline.process(
            conversation_id,
            message.content,
            message_id=message.id,
            credential=credential,
        )

        self.broadcast(conversation_id, typing_envelope(conversation_id, False, SENDER_AGENT))
        if reply is not None:
            self.broadcast(conversation_id, new_message_envelope(reply))

    def _schedule(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Scheduled agent reply failed", exc_info=exc)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait for scheduled replies, then for every outbox to be written."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        for connection in list(self._connections.values()):
            await connection.flush()

    async def aclose(self) -> None:
        """Cancel pending replies and close every connection (shutdown only)."""
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        for connection in list(self._connections.values()):
            await self.disconnect(connection)


def _validate(model: Any, data: dict[str, Any], event_type: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed(
            describe_validation_error(exc, f"'{event_type}' payload")
        ) from exc


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


async def build_relay(
    app: Annotated[FastAPI, Depends(get_app)],
    store: Annotated[ConversationStore, Depends(build_store)],
    pipeline: Annotated[ResponsePipeline, Depends(build_pipeline)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[ConnectionRelay, None]:
    """Create the relay, attach to ``app.state``; close it on shutdown."""
    relay = ConnectionRelay(
        store=store,
        pipeline=pipeline,
        typing_delay=config.relay.typing_delay,
        response_delay=config.relay.response_delay,
    )
    app.state.relay = relay
    logger.info(
        "Connection relay ready (typing_delay=%s, response_delay=%s)",
        config.relay.typing_delay,
        config.relay.response_delay,
    )
    yield relay
    await relay.aclose()


def get_relay(connection: HTTPConnection) -> ConnectionRelay:
    """Return the relay on ``app.state``; works for HTTP and WebSocket routes."""
    return connection.app.state.relay

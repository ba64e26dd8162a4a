"""Response pipeline: turns one inbound user message into one agent message."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.core.agent import AgentClient, ConversationContext, build_agent_client
from chatrelay.core.exceptions import NotFound
from chatrelay.core.metrics import AGENT_REPLIES_TOTAL
from chatrelay.core.store import (
    SENDER_AGENT,
    SENDER_USER,
    ConversationStore,
    Message,
    MessageCreate,
    build_store,
)
from chatrelay.infra.lifespan import get_app
from chatrelay.infra.telemetry import (
    ATTR_CONVERSATION_ID,
    ATTR_FIRST_MESSAGE,
    SPAN_PIPELINE_PROCESS,
    tracer,
)

logger = logging.getLogger(__name__)

TECHNICAL_DIFFICULTY_REPLY = (
    "Desculpe, estou enfrentando uma dificuldade técnica. "
    "Um atendente humano entrará em contato em breve."
)


def history_until(history: list[Message], current_id: str | None) -> list[Message]:
    """Messages up to and including *current_id*; all of them if it is absent.

    Replies run after a delay, so the stored history may already hold
    messages the user sent after the one being answered.
    """
    for index, message in enumerate(history):
        if message.id == current_id:
            return history[: index + 1]
    return history


def is_first_user_message(history: list[Message], current_id: str | None) -> bool:
    """True when no user message precedes *current_id* in *history*."""
    earlier = history_until(history, current_id)
    if earlier and earlier[-1].id == current_id:
        earlier = earlier[:-1]
    return not any(m.sender_type == SENDER_USER for m in earlier)


class ResponsePipeline:
    """Stateless orchestration of store → agent client → store.

    ``process`` always persists exactly one agent message for a
    conversation that exists: the generated reply, or a fixed apology
    when anything unexpected goes wrong on the way.
    """

    def __init__(
        self,
        store: ConversationStore,
        agent_client: AgentClient,
        sender_id: str,
        context_messages: int = 5,
    ) -> None:
        self._store = store
        self._agent_client = agent_client
        self._sender_id = sender_id
        self._context_messages = context_messages

    async def process(
        self,
        conversation_id: str,
        content: str,
        message_id: str | None = None,
        credential: str | None = None,
    ) -> Message | None:
        """Generate and persist the agent reply to a user message.

        Args:
            conversation_id: Conversation the user wrote in.
            content: Text of the user message.
            message_id: Id of the stored user message; later messages are
                left out of the context and the first-message check.
            credential: Terminal access key, if the client supplied one.

        Returns:
            The persisted agent message, or ``None`` if not even the
            apology could be stored (e.g. unknown conversation).
        """
        with tracer.start_as_current_span(SPAN_PIPELINE_PROCESS) as span:
            span.set_attribute(ATTR_CONVERSATION_ID, conversation_id)
            try:
                context = await self._build_context(conversation_id, message_id, credential)
                span.set_attribute(ATTR_FIRST_MESSAGE, context.is_first_user_message)
                reply = await self._agent_client.generate_reply(content, context)
                return await self._persist(conversation_id, reply)
            except Exception as exc:
                span.record_exception(exc)
                logger.exception(
                    "Response pipeline failed for conversation %s", conversation_id
                )
            AGENT_REPLIES_TOTAL.labels(source="error").inc()
            try:
                return await self._persist(conversation_id, TECHNICAL_DIFFICULTY_REPLY)
            except Exception:
                logger.exception(
                    "Could not persist fallback reply for conversation %s",
                    conversation_id,
                )
                return None

    async def _build_context(
        self,
        conversation_id: str,
        message_id: str | None,
        credential: str | None,
    ) -> ConversationContext:
        conversation = await self._store.get_conversation(conversation_id)
        if conversation is None:
            raise NotFound("Conversation", conversation_id)
        history = history_until(
            await self._store.list_messages(conversation_id), message_id
        )
        recent = history[-self._context_messages :] if self._context_messages else []
        return ConversationContext(
            conversation_id=conversation_id,
            user_id=conversation.user_id,
            queue_position=conversation.queue_position,
            previous_messages=recent,
            is_first_user_message=is_first_user_message(history, message_id),
            credential=credential,
        )

    async def _persist(self, conversation_id: str, content: str) -> Message:
        return await self._store.create_message(
            MessageCreate(
                conversation_id=conversation_id,
                sender_id=self._sender_id,
                sender_type=SENDER_AGENT,
                content=content,
            )
        )


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


async def build_pipeline(
    app: Annotated[FastAPI, Depends(get_app)],
    store: Annotated[ConversationStore, Depends(build_store)],
    agent_client: Annotated[AgentClient, Depends(build_agent_client)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[ResponsePipeline, None]:
    pipeline = ResponsePipeline(
        store=store,
        agent_client=agent_client,
        sender_id=config.agent.sender_id,
        context_messages=config.agent.context_messages,
    )
    app.state.pipeline = pipeline
    yield pipeline


def get_pipeline(request: Request) -> ResponsePipeline:
    """Return the pipeline stored on ``app.state`` by the lifespan."""
    return request.app.state.pipeline

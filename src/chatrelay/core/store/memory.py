"""Single-process conversation store backed by dicts and an ``asyncio.Lock``."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timezone

from pydantic import ValidationError

from chatrelay.core.exceptions import NotFound, ValidationFailed
from chatrelay.infra.id_utils import (
    PREFIX_AGENT,
    PREFIX_CONVERSATION,
    PREFIX_MESSAGE,
    generate_id,
)

from .base import ConversationStore
from .models import (
    Agent,
    AgentCreate,
    Conversation,
    ConversationCreate,
    ConversationUpdate,
    Message,
    MessageCreate,
)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryConversationStore(ConversationStore):
    """In-process store; every operation runs under one lock.

    Timestamps handed out are non-decreasing even if the wall clock steps
    back, so ordering by ``created_at`` never contradicts insertion order.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_stamp: datetime | None = None
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, Message] = {}
        self._message_ids: defaultdict[str, list[str]] = defaultdict(list)
        self._agents: dict[str, Agent] = {}

    def _stamp(self) -> datetime:
        now = self._clock()
        if self._last_stamp is not None and now < self._last_stamp:
            now = self._last_stamp
        self._last_stamp = now
        return now

    # -- conversations -----------------------------------------------------

    async def create_conversation(self, create: ConversationCreate) -> Conversation:
        async with self._lock:
            now = self._stamp()
            conversation = Conversation(
                id=generate_id(PREFIX_CONVERSATION),
                created_at=now,
                updated_at=now,
                **create.model_dump(),
            )
            self._conversations[conversation.id] = conversation
            return conversation

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        async with self._lock:
            return self._conversations.get(conversation_id)

    async def update_conversation(
        self, conversation_id: str, update: ConversationUpdate
    ) -> Conversation | None:
        async with self._lock:
            current = self._conversations.get(conversation_id)
            if current is None:
                return None
            fields = update.model_dump(exclude_unset=True)
            fields["updated_at"] = max(self._stamp(), current.updated_at)
            try:
                updated = Conversation.model_validate({**current.model_dump(), **fields})
            except ValidationError as exc:
                raise ValidationFailed(f"Invalid conversation update: {exc}") from exc
            self._conversations[conversation_id] = updated
            return updated

    # -- messages ----------------------------------------------------------

    async def list_messages(self, conversation_id: str) -> list[Message]:
        async with self._lock:
            messages = [
                self._messages[mid]
                for mid in self._message_ids.get(conversation_id, ())
            ]
        # sorted() is stable: equal timestamps keep insertion order.
        return sorted(messages, key=lambda m: m.created_at)

    async def create_message(self, create: MessageCreate) -> Message:
        if not create.content.strip():
            raise ValidationFailed("Message content must not be empty.")
        async with self._lock:
            if create.conversation_id not in self._conversations:
                raise NotFound("Conversation", create.conversation_id)
            message = Message(
                id=generate_id(PREFIX_MESSAGE),
                created_at=self._stamp(),
                **create.model_dump(),
            )
            self._messages[message.id] = message
            self._message_ids[message.conversation_id].append(message.id)
            return message

    async def mark_message_read(self, message_id: str) -> None:
        async with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.is_read:
                return
            self._messages[message_id] = message.model_copy(update={"is_read": True})

    # -- agents ------------------------------------------------------------

    async def create_agent(self, create: AgentCreate) -> Agent:
        async with self._lock:
            agent = Agent(id=generate_id(PREFIX_AGENT), **create.model_dump())
            self._agents[agent.id] = agent
            return agent

    async def list_agents(self) -> list[Agent]:
        async with self._lock:
            return list(self._agents.values())

    async def get_available_agent(self) -> Agent | None:
        async with self._lock:
            return next((a for a in self._agents.values() if a.is_online), None)

    async def update_agent_status(self, agent_id: str, is_online: bool) -> None:
        async with self._lock:
            agent = self._agents.get(agent_id)
            if agent is not None:
                self._agents[agent_id] = agent.model_copy(
                    update={"is_online": is_online}
                )

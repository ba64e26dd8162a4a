"""Tests for the in-memory conversation store."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from chatrelay.core.exceptions import NotFound, ValidationFailed
from chatrelay.core.store import (
    SENDER_AGENT,
    SENDER_USER,
    AgentCreate,
    ConversationCreate,
    ConversationUpdate,
    InMemoryConversationStore,
    MessageCreate,
)

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class _SteppingClock:
    """Returns the queued instants in order, then repeats the last one."""

    def __init__(self, *instants: datetime) -> None:
        self._instants = list(instants)

    def __call__(self) -> datetime:
        if len(self._instants) > 1:
            return self._instants.pop(0)
        return self._instants[0]


def _msg(conversation_id: str, content: str, sender_type=SENDER_USER) -> MessageCreate:
    return MessageCreate(
        conversation_id=conversation_id,
        sender_id="u1",
        sender_type=sender_type,
        content=content,
    )


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


# =========================================================================
# Conversations
# =========================================================================


class TestConversations:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, store):
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))

        assert conv.id.startswith("conv_")
        assert conv.user_id == "u1"
        assert conv.status == "active"
        assert conv.queue_position == 0
        assert conv.created_at == conv.updated_at

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get_conversation("conv_nope") is None

    @pytest.mark.asyncio
    async def test_update_only_touches_set_fields(self, store):
        conv = await store.create_conversation(
            ConversationCreate(user_id="u1", queue_position=3)
        )

        updated = await store.update_conversation(
            conv.id, ConversationUpdate(status="waiting")
        )

        assert updated is not None
        assert updated.status == "waiting"
        assert updated.queue_position == 3
        assert updated.user_id == "u1"
        assert updated.created_at == conv.created_at
        assert updated.updated_at >= conv.updated_at

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self, store):
        assert (
            await store.update_conversation("conv_nope", ConversationUpdate(status="closed"))
            is None
        )

    @pytest.mark.asyncio
    async def test_stored_record_is_not_mutated_by_update(self, store):
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))
        await store.update_conversation(conv.id, ConversationUpdate(status="closed"))

        assert conv.status == "active"
        assert (await store.get_conversation(conv.id)).status == "closed"

    @pytest.mark.parametrize("field", ["queuePosition", "status", "userId"])
    def test_update_rejects_null_for_required_fields(self, field):
        with pytest.raises(ValidationError):
            ConversationUpdate.model_validate({field: None})

    @pytest.mark.asyncio
    async def test_update_can_clear_agent(self, store):
        conv = await store.create_conversation(
            ConversationCreate(user_id="u1", agent_id="agent_1")
        )

        updated = await store.update_conversation(
            conv.id, ConversationUpdate.model_validate({"agentId": None})
        )

        assert updated.agent_id is None

    @pytest.mark.asyncio
    async def test_unvalidated_update_cannot_corrupt_record(self, store):
        conv = await store.create_conversation(
            ConversationCreate(user_id="u1", queue_position=2)
        )
        update = ConversationUpdate.model_construct(queue_position=None)

        with pytest.raises(ValidationFailed):
            await store.update_conversation(conv.id, update)

        assert (await store.get_conversation(conv.id)).queue_position == 2


# =========================================================================
# Messages
# =========================================================================


class TestMessages:
    @pytest.mark.asyncio
    async def test_list_unknown_conversation_is_empty(self, store):
        assert await store.list_messages("conv_nope") == []

    @pytest.mark.asyncio
    async def test_list_preserves_creation_order(self, store):
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))
        for text in ("first", "second", "third"):
            await store.create_message(_msg(conv.id, text))

        messages = await store.list_messages(conv.id)

        assert [m.content for m in messages] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_same_timestamp_keeps_insertion_order(self):
        store = InMemoryConversationStore(clock=lambda: T0)
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))
        for text in ("a", "b", "c", "d"):
            await store.create_message(_msg(conv.id, text))

        messages = await store.list_messages(conv.id)

        assert [m.content for m in messages] == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_timestamps_never_go_backwards(self):
        clock = _SteppingClock(T0, T0 + timedelta(seconds=5), T0 - timedelta(hours=1))
        store = InMemoryConversationStore(clock=clock)
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))
        first = await store.create_message(_msg(conv.id, "a"))
        second = await store.create_message(_msg(conv.id, "b"))

        assert second.created_at >= first.created_at
        assert [m.content for m in await store.list_messages(conv.id)] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_messages_isolated_per_conversation(self, store):
        a = await store.create_conversation(ConversationCreate(user_id="u1"))
        b = await store.create_conversation(ConversationCreate(user_id="u2"))
        await store.create_message(_msg(a.id, "for a"))
        await store.create_message(_msg(b.id, "for b"))

        assert [m.content for m in await store.list_messages(a.id)] == ["for a"]
        assert [m.content for m in await store.list_messages(b.id)] == ["for b"]

    @pytest.mark.asyncio
    async def test_create_defaults(self, store):
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))
        message = await store.create_message(_msg(conv.id, "hello"))

        assert message.id.startswith("msg_")
        assert message.message_type == "text"
        assert message.is_read is False

    @pytest.mark.asyncio
    async def test_unknown_conversation_raises_not_found(self, store):
        with pytest.raises(NotFound) as exc_info:
            await store.create_message(_msg("conv_nope", "hello"))
        assert exc_info.value.record_id == "conv_nope"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    async def test_blank_content_rejected(self, store, content):
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))

        with pytest.raises(ValidationFailed):
            await store.create_message(_msg(conv.id, content))
        assert await store.list_messages(conv.id) == []

    @pytest.mark.asyncio
    async def test_mark_read_is_idempotent(self, store):
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))
        message = await store.create_message(_msg(conv.id, "hello"))

        await store.mark_message_read(message.id)
        await store.mark_message_read(message.id)
        await store.mark_message_read("msg_unknown")

        [stored] = await store.list_messages(conv.id)
        assert stored.is_read is True
        assert message.is_read is False

    @pytest.mark.asyncio
    async def test_concurrent_creates_all_persist(self, store):
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))

        await asyncio.gather(
            *(store.create_message(_msg(conv.id, f"m{i}")) for i in range(20))
        )

        messages = await store.list_messages(conv.id)
        assert len(messages) == 20
        assert len({m.id for m in messages}) == 20


# =========================================================================
# Presence agents
# =========================================================================


class TestAgents:
    @pytest.mark.asyncio
    async def test_available_agent_is_first_online(self, store):
        offline = await store.create_agent(AgentCreate(name="off"))
        online = await store.create_agent(AgentCreate(name="on", is_online=True))

        available = await store.get_available_agent()

        assert available is not None
        assert available.id == online.id
        assert offline.id != online.id

    @pytest.mark.asyncio
    async def test_update_status_toggles_availability(self, store):
        agent = await store.create_agent(AgentCreate(name="bot", is_online=True))

        await store.update_agent_status(agent.id, False)

        assert await store.get_available_agent() is None
        [listed] = await store.list_agents()
        assert listed.is_online is False

    @pytest.mark.asyncio
    async def test_agent_message_sender_type_kept(self, store):
        conv = await store.create_conversation(ConversationCreate(user_id="u1"))
        message = await store.create_message(_msg(conv.id, "hi", SENDER_AGENT))
        assert message.sender_type == "agent"

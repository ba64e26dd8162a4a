"""Conversation and message endpoints backed by the conversation store."""

from fastapi import APIRouter, Response, status

from chatrelay.core.exceptions import NotFound
from chatrelay.core.store import (
    Conversation,
    ConversationCreate,
    ConversationUpdate,
    Message,
    MessageCreate,
)

from .deps import StoreDep

router = APIRouter(prefix="/api", tags=["conversations"])


@router.post("/conversations")
async def create_conversation(
    create: ConversationCreate, store: StoreDep
) -> Conversation:
    return await store.create_conversation(create)


@router.get("/conversations/{conversation_id}")
async def get_conversation(conversation_id: str, store: StoreDep) -> Conversation:
    conversation = await store.get_conversation(conversation_id)
    if conversation is None:
        raise NotFound("Conversation", conversation_id)
    return conversation


@router.patch("/conversations/{conversation_id}")
async def update_conversation(
    conversation_id: str, update: ConversationUpdate, store: StoreDep
) -> Conversation:
    """Apply only the fields present in the body."""
    conversation = await store.update_conversation(conversation_id, update)
    if conversation is None:
        raise NotFound("Conversation", conversation_id)
    return conversation


@router.get("/conversations/{conversation_id}/messages")
async def list_messages(conversation_id: str, store: StoreDep) -> list[Message]:
    """Messages in creation order; unknown conversations list as empty."""
    return await store.list_messages(conversation_id)


@router.post("/messages")
async def create_message(create: MessageCreate, store: StoreDep) -> Message:
    """Persist a message without relaying it or asking for a reply."""
    return await store.create_message(create)


@router.post("/messages/{message_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_message_read(message_id: str, store: StoreDep) -> Response:
    await store.mark_message_read(message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

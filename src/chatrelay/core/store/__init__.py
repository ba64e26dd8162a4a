"""Conversation store: records, abstract backend, in-memory backend."""

from .base import ConversationStore
from .deps import build_store, get_store
from .memory import InMemoryConversationStore
from .models import (
    SENDER_AGENT,
    SENDER_SYSTEM,
    SENDER_USER,
    Agent,
    AgentCreate,
    CamelModel,
    Conversation,
    ConversationCreate,
    ConversationStatus,
    ConversationUpdate,
    Message,
    MessageCreate,
    SenderType,
)

__all__ = [
    "Agent",
    "AgentCreate",
    "CamelModel",
    "Conversation",
    "ConversationCreate",
    "ConversationStatus",
    "ConversationStore",
    "ConversationUpdate",
    "InMemoryConversationStore",
    "Message",
    "MessageCreate",
    "SENDER_AGENT",
    "SENDER_SYSTEM",
    "SENDER_USER",
    "SenderType",
    "build_store",
    "get_store",
]

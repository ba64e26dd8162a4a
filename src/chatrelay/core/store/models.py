"""Records held by the conversation store.

Every record is a frozen pydantic model: readers can never observe a
half-built record, and the only mutation (``is_read``) swaps in a new
instance.  Wire format is camelCase (``conversationId``, ``senderType``).
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ConversationStatus = Literal["active", "waiting", "closed"]
SenderType = Literal["user", "agent", "system"]
MessageType = Literal["text"]

SENDER_USER: SenderType = "user"
SENDER_AGENT: SenderType = "agent"
SENDER_SYSTEM: SenderType = "system"


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases, accepting both forms."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class Conversation(FrozenCamelModel):
    """A chat session between one user and the automated responder."""

    id: str
    user_id: str
    agent_id: str | None = None
    status: ConversationStatus = "active"
    queue_position: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime


class ConversationCreate(CamelModel):
    """Fields accepted when opening a conversation."""

    user_id: str = Field(min_length=1)
    agent_id: str | None = None
    status: ConversationStatus = "active"
    queue_position: int = Field(default=0, ge=0)


class ConversationUpdate(CamelModel):
    """Partial update; ``id`` and ``created_at`` are not updatable."""

    user_id: str | None = Field(default=None, min_length=1)
    agent_id: str | None = None
    status: ConversationStatus | None = None
    queue_position: int | None = Field(default=None, ge=0)

    @field_validator("user_id", "status", "queue_position")
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; only agentId may be cleared.
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


class Message(FrozenCamelModel):
    """One persisted chat message."""

    id: str
    conversation_id: str
    sender_id: str
    sender_type: SenderType
    content: str
    message_type: MessageType = "text"
    is_read: bool = False
    created_at: datetime


class MessageCreate(CamelModel):
    """Fields accepted when sending a message."""

    conversation_id: str = Field(min_length=1)
    sender_id: str = Field(min_length=1)
    sender_type: SenderType
    content: str
    message_type: MessageType = "text"
    is_read: bool = False


# ---------------------------------------------------------------------------
# Agent (presence only)
# ---------------------------------------------------------------------------


class Agent(FrozenCamelModel):
    """Registration of the response service, shown as presence."""

    id: str
    name: str
    is_online: bool = False
    current_conversations: int = Field(default=0, ge=0)


class AgentCreate(CamelModel):
    name: str = Field(min_length=1)
    is_online: bool = False
    current_conversations: int = Field(default=0, ge=0)

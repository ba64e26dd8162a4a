"""WebSocket envelope schemas: ``{type, data, conversationId?}``."""

from typing import Any, Literal

from pydantic import Field, ValidationError

from chatrelay.core.store.models import CamelModel, Message, SenderType

# Inbound
EVENT_JOIN_CONVERSATION = "join_conversation"
EVENT_SEND_MESSAGE = "send_message"
EVENT_TYPING = "typing"

# Outbound
EVENT_NEW_MESSAGE = "new_message"
EVENT_USER_TYPING = "user_typing"
EVENT_ERROR = "error"

InboundType = Literal["join_conversation", "send_message", "typing"]


class InboundEnvelope(CamelModel):
    type: InboundType
    data: dict[str, Any] = Field(default_factory=dict)
    conversation_id: str | None = None


class JoinConversationData(CamelModel):
    conversation_id: str = Field(min_length=1)


class SendMessageData(CamelModel):
    sender_id: str = Field(default="user", min_length=1)
    sender_type: SenderType = "user"
    content: str
    access_key: str | None = None


class TypingData(CamelModel):
    is_typing: bool
    sender_type: SenderType


class OutboundEnvelope(CamelModel):
    type: str
    data: dict[str, Any]
    conversation_id: str | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def new_message_envelope(message: Message) -> OutboundEnvelope:
    return OutboundEnvelope(
        type=EVENT_NEW_MESSAGE,
        data=message.model_dump(mode="json", by_alias=True),
        conversation_id=message.conversation_id,
    )


def typing_envelope(
    conversation_id: str, is_typing: bool, sender_type: SenderType
) -> OutboundEnvelope:
    return OutboundEnvelope(
        type=EVENT_USER_TYPING,
        data=TypingData(is_typing=is_typing, sender_type=sender_type).model_dump(
            by_alias=True
        ),
        conversation_id=conversation_id,
    )


def error_envelope(message: str, code: str) -> OutboundEnvelope:
    return OutboundEnvelope(type=EVENT_ERROR, data={"message": message, "code": code})


def describe_validation_error(exc: ValidationError, what: str) -> str:
    """First problem of a pydantic error, phrased for the client."""
    errors = exc.errors()
    if not errors:
        return f"Invalid {what}."
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or what
    return f"Invalid {what}: {location}: {first.get('msg', 'invalid value')}"

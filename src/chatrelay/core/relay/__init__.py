"""Connection relay: WebSocket registry, envelopes and ordered fan-out."""

from .connection import Connection, ConnectionState
from .models import (
    EVENT_ERROR,
    EVENT_JOIN_CONVERSATION,
    EVENT_NEW_MESSAGE,
    EVENT_SEND_MESSAGE,
    EVENT_TYPING,
    EVENT_USER_TYPING,
    InboundEnvelope,
    OutboundEnvelope,
    SendMessageData,
    new_message_envelope,
)
from .relay import ConnectionRelay, build_relay, get_relay

__all__ = [
    "Connection",
    "ConnectionRelay",
    "ConnectionState",
    "EVENT_ERROR",
    "EVENT_JOIN_CONVERSATION",
    "EVENT_NEW_MESSAGE",
    "EVENT_SEND_MESSAGE",
    "EVENT_TYPING",
    "EVENT_USER_TYPING",
    "InboundEnvelope",
    "OutboundEnvelope",
    "SendMessageData",
    "build_relay",
    "get_relay",
    "new_message_envelope",
]

"""Prefixed ID generation.

All ids handed out by the relay use a ``{prefix}_{random}`` format so
that any id can be visually identified by its origin:

- ``conv_a8Kx3nQ9mP2r``  conversation
- ``msg_kJ3pW7mD4bNx``   message (user / agent / system)
- ``agent_L7wBd4Fj9Ks2`` presence agent record
- ``conn_Qm2Zt8Vb1cXe``  live WebSocket connection (never persisted)
"""

import secrets
import string

PREFIX_CONVERSATION = "conv"
PREFIX_MESSAGE = "msg"
PREFIX_AGENT = "agent"
PREFIX_CONNECTION = "conn"

_ALPHABET = string.ascii_letters + string.digits
_DEFAULT_LENGTH = 12  # ~71 bits of entropy


def generate_id(prefix: str, length: int = _DEFAULT_LENGTH) -> str:
    """Generate a prefixed random id, e.g. ``generate_id("msg")``."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{prefix}_{suffix}"

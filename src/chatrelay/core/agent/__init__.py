"""Response generator client: backend calls, metadata cache, local fallback."""

from .cache import CacheEntryInfo, MetadataCache
from .client import AgentClient
from .deps import build_agent_client, get_agent_client
from .fallback import DEFAULT_REPLY, RULES, KeywordRule, local_reply, match_rule
from .models import (
    AgentReply,
    AgentRequest,
    AgentStatus,
    ConversationContext,
    TerminalMetadata,
)

__all__ = [
    "AgentClient",
    "AgentReply",
    "AgentRequest",
    "AgentStatus",
    "CacheEntryInfo",
    "ConversationContext",
    "DEFAULT_REPLY",
    "KeywordRule",
    "MetadataCache",
    "RULES",
    "TerminalMetadata",
    "build_agent_client",
    "get_agent_client",
    "local_reply",
    "match_rule",
]

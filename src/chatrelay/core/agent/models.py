"""Wire schemas of the agent backend and the per-request context."""

from dataclasses import dataclass, field

from pydantic import ConfigDict, Field

from chatrelay.core.store.models import CamelModel, Message

# ---------------------------------------------------------------------------
# Terminal metadata (resolved from an access key)
# ---------------------------------------------------------------------------


class TerminalProvider(CamelModel):
    id: int
    name: str
    slug: str = ""


class TerminalLocation(CamelModel):
    id: int
    name: str


class TerminalSession(CamelModel):
    id: int
    start: str
    end: str
    has_slots_left: bool = False


class TerminalService(CamelModel):
    id: int
    name: str
    sessions: list[TerminalSession] = Field(default_factory=list)


class TerminalMetadata(CamelModel):
    """Terminal/service context the backend returns for an access key."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    provider: TerminalProvider
    location: TerminalLocation
    services: list[TerminalService] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Reply generation boundary
# ---------------------------------------------------------------------------


class AgentRequestContext(CamelModel):
    user_id: str | None = None
    queue_position: int | None = None
    previous_messages: list[Message] = Field(default_factory=list)
    metadata: TerminalMetadata | None = None
    is_first_message: bool = False
    credential: str | None = None


class AgentRequest(CamelModel):
    """Body of ``POST /api/chat`` on the agent backend."""

    message: str
    session_id: str
    context: AgentRequestContext


class AgentReply(CamelModel):
    """Expected reply envelope; anything else counts as upstream failure."""

    model_config = ConfigDict(extra="ignore")

    response: str
    tools_used: list[str] | None = None


class CredentialLookup(CamelModel):
    """Body of the terminal lookup call."""

    access_key: str


# ---------------------------------------------------------------------------
# Per-request context built by the pipeline
# ---------------------------------------------------------------------------


@dataclass
class ConversationContext:
    """What the pipeline knows about a conversation when asking for a reply."""

    conversation_id: str
    user_id: str | None = None
    queue_position: int | None = None
    previous_messages: list[Message] = field(default_factory=list)
    is_first_user_message: bool = False
    credential: str | None = None


@dataclass
class AgentStatus:
    connected: bool
    latency_ms: int | None = None

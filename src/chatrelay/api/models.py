"""Pydantic models for the HTTP API that are not store records."""

from pydantic import Field

from chatrelay.core.agent import CacheEntryInfo
from chatrelay.core.store import CamelModel, Message


class StatusResponse(CamelModel):
    """Aggregate status shown in the chat header."""

    connected: bool = Field(description="Agent backend answered its health probe")
    latency: int | None = Field(
        default=None, description="Health probe round trip in milliseconds"
    )
    queue_position: int = Field(default=0, description="Position in the queue")
    wait_time: int = Field(default=0, description="Estimated wait in minutes")
    agents_online: int = Field(default=0, description="Online presence agents")
    service: str = Field(description="Display name of the response service")
    agent_id: str | None = Field(
        default=None, description="Presence agent currently available"
    )


class AgentCallRequest(CamelModel):
    """Manual pipeline invocation for one conversation."""

    conversation_id: str = Field(min_length=1)
    message: str = Field(min_length=1)
    access_key: str | None = None


class AgentCallResponse(CamelModel):
    success: bool = True
    message: Message = Field(description="The persisted agent message")


class ValidateTerminalRequest(CamelModel):
    access_key: str = Field(default="", description="Terminal access key")


class CacheEntryResponse(CamelModel):
    """One cached terminal; ``credential`` is masked."""

    credential: str
    terminal_name: str
    age_seconds: float
    expires_in_seconds: float

    @classmethod
    def from_info(cls, info: CacheEntryInfo) -> "CacheEntryResponse":
        return cls(
            credential=info.credential,
            terminal_name=info.terminal_name,
            age_seconds=info.age_seconds,
            expires_in_seconds=info.expires_in_seconds,
        )


class CacheClearResponse(CamelModel):
    removed: int

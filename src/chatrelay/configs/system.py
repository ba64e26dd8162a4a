from datetime import timedelta
from typing import Literal

from pydantic import BaseModel, Field


class ThirdPartyConfig(BaseModel):
    """Configuration for the external agent backend."""

    agent_backend_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the response-generation service",
    )
    agent_chat_path: str = Field(
        default="/api/chat", description="Path of the reply generation endpoint"
    )
    agent_validate_path: str = Field(
        default="/api/terminal/validate",
        description="Path of the terminal/access-key lookup endpoint",
    )
    agent_health_path: str = Field(
        default="/api/health", description="Path of the backend health check"
    )


class AgentConfig(BaseModel):
    """Settings for the response generator client and pipeline."""

    service_name: str = Field(
        default="Filazero Agent", description="Display name reported by /api/status"
    )
    sender_id: str = Field(
        default="filazero-chatbot-proxy",
        description="Sender id stamped on every agent message",
    )
    request_timeout: timedelta = Field(
        default=timedelta(seconds=30),
        description="Timeout of a single reply generation call",
    )
    lookup_timeout: timedelta = Field(
        default=timedelta(seconds=10),
        description="Timeout of a single terminal metadata lookup",
    )
    context_messages: int = Field(
        default=5, ge=0, description="Messages gathered by the pipeline as context"
    )
    request_history_messages: int = Field(
        default=3,
        ge=0,
        description="Previous messages forwarded to the agent backend",
    )


class RelayConfig(BaseModel):
    """Simulated typing delays of the connection relay."""

    typing_delay: timedelta = Field(
        default=timedelta(milliseconds=500),
        description="Delay before the agent typing indicator is broadcast",
    )
    response_delay: timedelta = Field(
        default=timedelta(milliseconds=2500),
        description="Delay, measured from the user send, before the reply is generated",
    )


class CacheConfig(BaseModel):
    """Terminal metadata cache settings."""

    metadata_ttl: timedelta = Field(
        default=timedelta(minutes=5),
        description="How long a resolved terminal stays cached",
    )


class StatusConfig(BaseModel):
    """Settings of the aggregate status endpoint."""

    minutes_per_queue_position: int = Field(
        default=2, ge=0, description="Wait estimate per queue position (minutes)"
    )


class LoggingConfig(BaseModel):
    """Root logger settings."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="info", description="Root log level"
    )
    json_output: bool = Field(
        default=False, description="Emit JSON lines instead of coloured text"
    )


class TracingConfig(BaseModel):
    """OpenTelemetry OTLP exporter settings."""

    enabled: bool = Field(default=False, description="Enable OTEL tracing")
    endpoint: str = Field(default="", description="OTLP HTTP traces endpoint")
    username: str = Field(default="", description="Basic-auth user for the collector")
    password: str = Field(default="", description="Basic-auth password")
    service_name: str = Field(default="chatrelay", description="OTEL service.name")
    sample_rate: float = Field(
        default=1.0, ge=0.0, le=1.0, description="Root sampling ratio"
    )
    excluded_urls: list[str] = Field(
        default_factory=lambda: ["/health", "/metrics"],
        description="Paths not traced nor instrumented",
    )

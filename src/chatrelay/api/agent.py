"""Agent-facing endpoints: status, manual pipeline call, terminal setup."""

import logging

from fastapi import APIRouter, Query

from chatrelay.core.agent import TerminalMetadata
from chatrelay.core.exceptions import InternalError, NotFound
from chatrelay.core.relay import new_message_envelope

from .deps import AgentClientDep, AppConfigDep, PipelineDep, RelayDep, StoreDep
from .models import (
    AgentCallRequest,
    AgentCallResponse,
    CacheClearResponse,
    CacheEntryResponse,
    StatusResponse,
    ValidateTerminalRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["agent"])


@router.get("/status")
async def get_status(
    config: AppConfigDep,
    store: StoreDep,
    agent_client: AgentClientDep,
    conversation_id: str | None = Query(default=None, alias="conversationId"),
) -> StatusResponse:
    """Backend health plus the queue estimate for one conversation.

    ``waitTime`` is ``queuePosition`` times the configured minutes per
    position.  Without ``conversationId`` both are zero.
    """
    queue_position = 0
    if conversation_id:
        conversation = await store.get_conversation(conversation_id)
        if conversation is None:
            raise NotFound("Conversation", conversation_id)
        queue_position = conversation.queue_position

    backend = await agent_client.check_status()
    agents = await store.list_agents()
    available = await store.get_available_agent()

    return StatusResponse(
        connected=backend.connected,
        latency=backend.latency_ms,
        queue_position=queue_position,
        wait_time=queue_position * config.status.minutes_per_queue_position,
        agents_online=sum(1 for a in agents if a.is_online),
        service=config.agent.service_name,
        agent_id=available.id if available is not None else None,
    )


@router.post("/agent/call")
async def call_agent(
    body: AgentCallRequest,
    store: StoreDep,
    pipeline: PipelineDep,
    relay: RelayDep,
) -> AgentCallResponse:
    """Run the response pipeline right away, without the typing delays.

    The reply is persisted and relayed to the conversation's connections.
    """
    if await store.get_conversation(body.conversation_id) is None:
        raise NotFound("Conversation", body.conversation_id)

    reply = await pipeline.process(
        body.conversation_id, body.message, credential=body.access_key
    )
    if reply is None:
        raise InternalError(
            f"No agent reply could be stored for {body.conversation_id!r}"
        )
    relay.broadcast(body.conversation_id, new_message_envelope(reply))
    return AgentCallResponse(message=reply)


@router.post("/terminal/validate")
async def validate_terminal(
    body: ValidateTerminalRequest, agent_client: AgentClientDep
) -> TerminalMetadata:
    """Resolve an access key to its terminal, or 400 with the reason."""
    return await agent_client.validate_credential(body.access_key)


@router.get("/terminal/cache")
async def list_terminal_cache(agent_client: AgentClientDep) -> list[CacheEntryResponse]:
    return [CacheEntryResponse.from_info(e) for e in agent_client.cache_entries()]


@router.delete("/terminal/cache")
async def clear_terminal_cache(
    agent_client: AgentClientDep,
    access_key: str | None = Query(default=None, alias="accessKey"),
) -> CacheClearResponse:
    """Drop one cached terminal, or all of them without ``accessKey``."""
    removed = agent_client.invalidate_cache(access_key)
    return CacheClearResponse(removed=removed)

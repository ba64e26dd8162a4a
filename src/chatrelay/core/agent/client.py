"""AgentClient: calls to the external response-generation service.

Public API
----------
``generate_reply(message, context)``
    One POST to the backend with a bounded timeout.  Any failure
    (network, non-2xx, schema mismatch) degrades to ``local_reply``;
    this method never raises.

``resolve_metadata(credential, force_refresh=False)``
    Cached terminal lookup; ``None`` when it cannot be resolved.

``validate_credential(credential)``
    Same lookup, but raises ``ValidationFailed`` with a readable reason.

``invalidate_cache(credential=None)`` / ``cache_entries()``
    Cache maintenance and inspection.

``check_status()``
    Health probe used by the status endpoint.
"""

from __future__ import annotations

import logging
import time

import httpx
from pydantic import ValidationError

from chatrelay.configs.system import AgentConfig, ThirdPartyConfig
from chatrelay.core.exceptions import (
    ChatRelayError,
    UpstreamUnavailable,
    ValidationFailed,
)
from chatrelay.core.metrics import (
    AGENT_CALL_LATENCY_SECONDS,
    AGENT_REPLIES_TOTAL,
    METADATA_CACHE_LOOKUPS_TOTAL,
)
from chatrelay.infra.telemetry import (
    ATTR_CACHE_RESULT,
    ATTR_CONVERSATION_ID,
    ATTR_FIRST_MESSAGE,
    ATTR_HTTP_STATUS,
    ATTR_REPLY_SOURCE,
    SPAN_AGENT_LOOKUP,
    SPAN_AGENT_REPLY,
    tracer,
)

from .cache import CacheEntryInfo, MetadataCache
from .fallback import local_reply
from .models import (
    AgentReply,
    AgentRequest,
    AgentRequestContext,
    AgentStatus,
    ConversationContext,
    CredentialLookup,
    TerminalMetadata,
)

logger = logging.getLogger(__name__)

EMPTY_REPLY = "Desculpe, não consegui processar sua mensagem. Tente novamente."

MISSING_CREDENTIAL = "Access key é obrigatório."
INVALID_CREDENTIAL = "Access key inválida ou terminal não encontrado."
VALIDATION_UNAVAILABLE = (
    "Não foi possível validar o terminal no momento. Tente novamente mais tarde."
)

SOURCE_UPSTREAM = "upstream"
SOURCE_FALLBACK = "fallback"


class AgentClient:
    """Client of the agent backend with a local fallback responder."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        third_party: ThirdPartyConfig,
        agent: AgentConfig,
        cache: MetadataCache,
    ) -> None:
        self._http = http
        self._third_party = third_party
        self._agent = agent
        self._cache = cache

    # ------------------------------------------------------------------
    # Reply generation
    # ------------------------------------------------------------------

    async def generate_reply(self, message: str, context: ConversationContext) -> str:
        """Return the backend's reply, or the local reply on any failure."""
        with tracer.start_as_current_span(SPAN_AGENT_REPLY) as span:
            span.set_attribute(ATTR_CONVERSATION_ID, context.conversation_id)
            span.set_attribute(ATTR_FIRST_MESSAGE, context.is_first_user_message)
            try:
                reply = await self._request_reply(message, context)
                source = SOURCE_UPSTREAM
            except UpstreamUnavailable as exc:
                logger.warning(
                    "Agent backend unavailable for %s, using local reply: %s",
                    context.conversation_id,
                    exc,
                )
                reply, source = self.local_reply(message), SOURCE_FALLBACK
            except Exception:
                logger.warning(
                    "Unexpected error calling agent backend for %s",
                    context.conversation_id,
                    exc_info=True,
                )
                reply, source = self.local_reply(message), SOURCE_FALLBACK
            span.set_attribute(ATTR_REPLY_SOURCE, source)
            AGENT_REPLIES_TOTAL.labels(source=source).inc()
            return reply

    @staticmethod
    def local_reply(message: str) -> str:
        return local_reply(message)

    async def _request_reply(self, message: str, context: ConversationContext) -> str:
        metadata = None
        if context.credential:
            metadata = await self.resolve_metadata(
                context.credential, force_refresh=context.is_first_user_message
            )

        history_size = self._agent.request_history_messages
        request = AgentRequest(
            message=message,
            session_id=context.conversation_id,
            context=AgentRequestContext(
                user_id=context.user_id,
                queue_position=context.queue_position,
                previous_messages=(
                    context.previous_messages[-history_size:] if history_size else []
                ),
                metadata=metadata,
                is_first_message=context.is_first_user_message,
                credential=context.credential,
            ),
        )

        outcome = "error"
        start = time.monotonic()
        try:
            response = await self._http.post(
                self._third_party.agent_chat_path,
                json=request.model_dump(mode="json", by_alias=True),
                timeout=self._agent.request_timeout.total_seconds(),
            )
            response.raise_for_status()
            reply = AgentReply.model_validate_json(response.content)
            outcome = "ok"
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Agent backend call failed: {exc!r}") from exc
        except ValidationError as exc:
            raise UpstreamUnavailable(
                "Agent backend reply did not match the expected schema"
            ) from exc
        finally:
            AGENT_CALL_LATENCY_SECONDS.labels(outcome=outcome).observe(
                time.monotonic() - start
            )

        logger.debug(
            "Agent reply received for %s (tools=%s)",
            context.conversation_id,
            reply.tools_used,
        )
        return reply.response or EMPTY_REPLY

    # ------------------------------------------------------------------
    # Terminal metadata
    # ------------------------------------------------------------------

    async def resolve_metadata(
        self, credential: str, force_refresh: bool = False
    ) -> TerminalMetadata | None:
        """Cached lookup; ``None`` when the credential cannot be resolved."""
        try:
            return await self._resolve(credential, force_refresh)
        except ChatRelayError as exc:
            logger.warning("Terminal metadata unavailable: %s", exc)
            return None

    async def validate_credential(self, credential: str) -> TerminalMetadata:
        """Resolve *credential* or raise ``ValidationFailed`` with the reason."""
        try:
            return await self._resolve(credential, force_refresh=False)
        except UpstreamUnavailable as exc:
            raise ValidationFailed(VALIDATION_UNAVAILABLE) from exc

    async def _resolve(self, credential: str, force_refresh: bool) -> TerminalMetadata:
        credential = (credential or "").strip()
        if not credential:
            raise ValidationFailed(MISSING_CREDENTIAL)

        with tracer.start_as_current_span(SPAN_AGENT_LOOKUP) as span:
            if not force_refresh:
                cached = self._cache.get(credential)
                if cached is not None:
                    span.set_attribute(ATTR_CACHE_RESULT, "hit")
                    METADATA_CACHE_LOOKUPS_TOTAL.labels(result="hit").inc()
                    return cached

            async with self._cache.lock_for(credential):
                # Another waiter may have filled the entry meanwhile.
                if not force_refresh:
                    cached = self._cache.get(credential)
                    if cached is not None:
                        span.set_attribute(ATTR_CACHE_RESULT, "hit")
                        METADATA_CACHE_LOOKUPS_TOTAL.labels(result="hit").inc()
                        return cached

                result = "refresh" if force_refresh else "miss"
                span.set_attribute(ATTR_CACHE_RESULT, result)
                METADATA_CACHE_LOOKUPS_TOTAL.labels(result=result).inc()
                metadata = await self._lookup(credential, span)
                self._cache.put(credential, metadata)
                logger.info("Terminal %s resolved and cached", metadata.id)
                return metadata

    async def _lookup(self, credential: str, span) -> TerminalMetadata:
        try:
            response = await self._http.post(
                self._third_party.agent_validate_path,
                json=CredentialLookup(access_key=credential).model_dump(by_alias=True),
                timeout=self._agent.lookup_timeout.total_seconds(),
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Terminal lookup failed: {exc!r}") from exc

        span.set_attribute(ATTR_HTTP_STATUS, response.status_code)
        if response.is_client_error:
            raise ValidationFailed(_error_reason(response))
        if not response.is_success:
            raise UpstreamUnavailable(
                f"Terminal lookup returned HTTP {response.status_code}"
            )
        try:
            return TerminalMetadata.model_validate_json(response.content)
        except ValidationError as exc:
            raise UpstreamUnavailable(
                "Terminal lookup reply did not match the expected schema"
            ) from exc

    def invalidate_cache(self, credential: str | None = None) -> int:
        removed = self._cache.invalidate(credential.strip() if credential else None)
        logger.info("Terminal metadata cache invalidated (%d entries)", removed)
        return removed

    def cache_entries(self) -> list[CacheEntryInfo]:
        return self._cache.entries()

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def check_status(self) -> AgentStatus:
        start = time.monotonic()
        try:
            response = await self._http.get(
                self._third_party.agent_health_path,
                timeout=self._agent.lookup_timeout.total_seconds(),
            )
        except httpx.HTTPError as exc:
            logger.warning("Agent backend health check failed: %r", exc)
            return AgentStatus(connected=False)
        latency_ms = int((time.monotonic() - start) * 1000)
        return AgentStatus(connected=response.is_success, latency_ms=latency_ms)


def _error_reason(response: httpx.Response) -> str:
    """Readable reason from a 4xx lookup reply (``{"message": ...}``)."""
    try:
        body = response.json()
    except ValueError:
        return INVALID_CREDENTIAL
    if isinstance(body, dict):
        reason = body.get("message") or body.get("detail")
        if isinstance(reason, str) and reason.strip():
            return reason
    return INVALID_CREDENTIAL

"""OpenTelemetry tracer, span names and exporter bootstrap.

``tracer`` is usable from import time: until ``init_telemetry`` installs
an SDK provider it hands out non-recording spans, so tracing stays off
unless ``TracingConfig.enabled`` is set and an endpoint is given.

When enabled, spans go to an OTLP/HTTP collector and two
auto-instrumentations are switched on: FastAPI (inbound HTTP and
WebSocket) and httpx (calls to the agent backend).
"""

from __future__ import annotations

import base64
import logging

from opentelemetry import trace

from chatrelay.configs.system import TracingConfig

logger = logging.getLogger(__name__)

tracer = trace.get_tracer("chatrelay")

# Span names
SPAN_AGENT_REPLY = "agent.reply"
SPAN_AGENT_LOOKUP = "agent.metadata_lookup"
SPAN_PIPELINE_PROCESS = "pipeline.process"

# Span attributes
ATTR_CONVERSATION_ID = "chat.conversation_id"
ATTR_FIRST_MESSAGE = "chat.first_message"
ATTR_REPLY_SOURCE = "agent.reply_source"
ATTR_CACHE_RESULT = "agent.cache_result"
ATTR_HTTP_STATUS = "agent.http_status"


def _basic_auth(settings: TracingConfig) -> dict[str, str]:
    if not (settings.username and settings.password):
        return {}
    token = base64.b64encode(f"{settings.username}:{settings.password}".encode())
    return {"Authorization": f"Basic {token.decode()}"}


def _install_provider(settings: TracingConfig) -> None:
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.service_name}),
        sampler=ParentBased(root=TraceIdRatioBased(settings.sample_rate)),
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.endpoint, headers=_basic_auth(settings))
        )
    )
    trace.set_tracer_provider(provider)


def init_telemetry(app: object | None, settings: TracingConfig | None) -> bool:
    """Install the SDK provider and instrument FastAPI and httpx.

    Attaches ASGI middleware, so call it while building the app.
    Returns whether tracing was switched on.
    """
    if settings is None or not settings.enabled:
        logger.info("Tracing disabled")
        return False
    if not settings.endpoint:
        logger.warning("Tracing enabled without an endpoint; leaving it off")
        return False

    _install_provider(settings)

    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    if app is not None:
        FastAPIInstrumentor.instrument_app(
            app, excluded_urls=",".join(settings.excluded_urls)
        )
    HTTPXClientInstrumentor().instrument()

    logger.info(
        "Tracing to %s (service=%s, sample_rate=%s)",
        settings.endpoint,
        settings.service_name,
        settings.sample_rate,
    )
    return True

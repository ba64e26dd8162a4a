"""Prometheus metrics for the chat relay.

Custom business metrics that complement the auto-instrumented HTTP
metrics provided by ``prometheus-fastapi-instrumentator``.

All metrics use the ``chatrelay_`` prefix.
"""

import logging

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from chatrelay.configs.system import TracingConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Relay metrics
# ---------------------------------------------------------------------------

RELAY_CONNECTIONS_ACTIVE = Gauge(
    "chatrelay_connections_active",
    "Number of WebSocket connections currently registered",
)

RELAY_BROADCASTS_TOTAL = Counter(
    "chatrelay_broadcasts_total",
    "Total broadcasts fanned out, by envelope type",
    ["event_type"],  # new_message | user_typing
)

RELAY_DELIVERIES_TOTAL = Counter(
    "chatrelay_deliveries_total",
    "Total envelopes enqueued to individual connections",
    ["event_type"],
)

RELAY_REJECTED_ENVELOPES_TOTAL = Counter(
    "chatrelay_rejected_envelopes_total",
    "Inbound envelopes rejected as malformed or unroutable",
    ["code"],
)

# ---------------------------------------------------------------------------
# Agent metrics
# ---------------------------------------------------------------------------

AGENT_REPLIES_TOTAL = Counter(
    "chatrelay_agent_replies_total",
    "Agent replies persisted, by origin",
    ["source"],  # upstream | fallback | error
)

AGENT_CALL_LATENCY_SECONDS = Histogram(
    "chatrelay_agent_call_latency_seconds",
    "Latency of reply generation calls to the agent backend",
    ["outcome"],  # ok | error
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)

METADATA_CACHE_LOOKUPS_TOTAL = Counter(
    "chatrelay_metadata_cache_lookups_total",
    "Terminal metadata resolutions, by cache result",
    ["result"],  # hit | miss | refresh
)


def instrument_app(app: FastAPI, tracing: TracingConfig) -> None:
    """Attach HTTP instrumentation and the ``/metrics`` endpoint.

    Adds ASGI middleware, so it must run before the app starts.
    """
    Instrumentator(
        should_instrument_requests_inprogress=True,
        excluded_handlers=tracing.excluded_urls,
    ).instrument(app).expose(app, endpoint="/metrics")

    logger.info("Prometheus metrics initialised")

"""Root logger setup shared by the relay and uvicorn.

Two output modes, picked by ``LoggingConfig.json_output``:

* coloured one-liners through uvicorn's ``DefaultFormatter`` (local runs)
* JSON objects through ``python-json-logger`` (log shippers)

Each record also carries ``trace_id``/``span_id`` of the active
OpenTelemetry span (empty strings outside a span), so a fallback reply
in the logs can be matched with its agent call span.
"""

from __future__ import annotations

import logging
import sys

from opentelemetry import trace

from chatrelay.configs.system import LoggingConfig

DEV_FORMAT = "%(levelprefix)s %(asctime)s [%(name)s] %(message)s"
DEV_DATE_FORMAT = "%H:%M:%S"
JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s"
JSON_RENAMES = {"asctime": "ts", "levelname": "level", "name": "logger"}

QUIET_LOGGERS = ("httpx", "httpcore", "opentelemetry", "websockets")
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class SpanContextFilter(logging.Filter):
    """Stamps the current span's ids onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        valid = span_context is not None and span_context.is_valid
        record.trace_id = f"{span_context.trace_id:032x}" if valid else ""  # type: ignore[attr-defined]
        record.span_id = f"{span_context.span_id:016x}" if valid else ""  # type: ignore[attr-defined]
        return True


def _formatter(config: LoggingConfig) -> logging.Formatter:
    if config.json_output:
        from pythonjsonlogger.json import JsonFormatter

        return JsonFormatter(
            fmt=JSON_FIELDS,
            rename_fields=JSON_RENAMES,
            defaults={"trace_id": "", "span_id": ""},
        )

    from uvicorn.logging import DefaultFormatter

    return DefaultFormatter(fmt=DEV_FORMAT, datefmt=DEV_DATE_FORMAT, use_colors=True)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install one stdout handler on the root and uvicorn loggers.

    Safe to call again; handlers are replaced, not stacked.
    """
    config = config or LoggingConfig()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SpanContextFilter())
    handler.setFormatter(_formatter(config))

    root = logging.getLogger()
    root.setLevel(config.level.upper())
    root.handlers = [handler]

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [handler]
        uvicorn_logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

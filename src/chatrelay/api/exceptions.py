"""Global exception handlers mapping ``ChatRelayError`` to HTTP replies.

Every error body has the shape ``{"detail": str, "code": str}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from chatrelay.core.exceptions import (
    ChatRelayError,
    InternalError,
    NotFound,
    UpstreamUnavailable,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, exc: ChatRelayError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers on ``app``."""

    @app.exception_handler(NotFound)
    async def handle_not_found(request: Request, exc: NotFound) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(ValidationFailed)
    async def handle_validation_failed(
        request: Request, exc: ValidationFailed
    ) -> JSONResponse:
        return _error(400, exc)

    @app.exception_handler(UpstreamUnavailable)
    async def handle_upstream_unavailable(
        request: Request, exc: UpstreamUnavailable
    ) -> JSONResponse:
        logger.warning("Upstream unavailable on %s: %s", request.url.path, exc)
        return _error(502, exc)

    @app.exception_handler(InternalError)
    async def handle_internal_error(
        request: Request, exc: InternalError
    ) -> JSONResponse:
        logger.error("Internal error on %s: %s", request.url.path, exc)
        return _error(500, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            detail = f"Invalid request: {location}: {first.get('msg', 'invalid value')}"
        else:
            detail = "Invalid request."
        return JSONResponse(
            status_code=400,
            content={"detail": detail, "code": ValidationFailed.code},
        )

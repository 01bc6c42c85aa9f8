"""HTTP middleware for the briefrag API.

Two ``BaseHTTPMiddleware`` classes plus a CORS helper.  Starlette runs
middleware in reverse order of registration, and ``main.py`` registers the
error handler first, so a request passes through::

    RequestContext -> ErrorHandling -> route

``RequestContextMiddleware`` therefore logs the status code of the JSON
error body, not the raw exception.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from briefrag.api.schemas import ErrorResponse
from briefrag.utils.errors import BriefRagError
from briefrag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Allow cross-origin calls from *allowed_origins* (every origin when omitted)."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the log context and log one line per request.

    The id is taken from the ``X-Request-ID`` header when the caller sends
    one, generated otherwise, and echoed on the response.  Every log event
    emitted while the request is handled (ingestion progress, vector
    searches, provider retries) carries it as ``request_id``.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            _logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn ``BriefRagError`` into an ``ErrorResponse`` JSON body.

    The status code is the exception class's ``http_status``.  Client
    errors (4xx) log at warning level; provider and storage failures (5xx)
    log at error level together with their ``retryable`` flag.  Any other
    exception propagates to Starlette's default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except BriefRagError as exc:
            log = _logger.warning if exc.http_status < 500 else _logger.error
            log(
                "request_failed",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                retryable=exc.retryable,
                status=exc.http_status,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=exc.http_status, content=body.model_dump())

"""briefrag API layer: routes, schemas and middleware."""

from briefrag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestContextMiddleware,
    configure_cors,
)
from briefrag.api.routes import router
from briefrag.api.schemas import (
    ErrorResponse,
    HealthResponse,
    IngestResponse,
    SearchResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestContextMiddleware",
    "configure_cors",
    "router",
    "ErrorResponse",
    "HealthResponse",
    "IngestResponse",
    "SearchResponse",
]

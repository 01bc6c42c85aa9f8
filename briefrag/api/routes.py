"""FastAPI API routes for briefrag.

Endpoint                              Method  Description
-------------------------------------------------------------------------
/api/v1/documents                     POST    Register an uploaded file
/api/v1/documents/{document_id}       DELETE  Delete a document and its chunks
/api/v1/collections/{id}/documents    GET     List a collection's documents
/api/v1/ingest                        POST    Extract, chunk, embed and store
/api/v1/ingest/{document_id}/status   GET     Poll ingestion progress
/api/v1/search                        POST    Similarity search
/api/v1/answer                        POST    Grounded answer to a conversation
/api/v1/briefings                     POST    Grounded markdown briefing
/api/v1/health                        GET     Health check + provider status

Services are resolved from ``app.state`` (populated at startup in
``main.py``) through ``Annotated[..., Depends(...)]`` aliases.  Application
errors raised by the services are turned into JSON error bodies by
:class:`~briefrag.api.middleware.ErrorHandlingMiddleware`.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request

from briefrag.api.schemas import (
    AnswerRequest,
    BriefingRequest,
    DeleteDocumentResponse,
    DocumentResponse,
    GroundedAnswerResponse,
    HealthResponse,
    IngestionStatusResponse,
    IngestRequest,
    IngestResponse,
    RegisterDocumentRequest,
    SearchRequest,
    SearchResponse,
)
from briefrag.interfaces.vector_store_provider import IVectorStoreProvider
from briefrag.models.rag import ChatMessage, RetrievalQuery
from briefrag.pipeline.progress_tracker import ProgressTracker
from briefrag.services.grounded_completion import GroundedCompletionService
from briefrag.services.ingestion.ingestion_service import IngestionService
from briefrag.services.retrieval_service import RetrievalService
from briefrag.utils.errors import BriefRagError, DocumentNotFoundError
from briefrag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_ingestion_service(request: Request) -> IngestionService:
    """Return the ingestion service from application state."""
    return request.app.state.ingestion_service


def _get_retrieval_service(request: Request) -> RetrievalService:
    """Return the retrieval service from application state."""
    return request.app.state.retrieval_service


def _get_completion_service(request: Request) -> GroundedCompletionService:
    """Return the grounded completion service from application state."""
    return request.app.state.completion_service


def _get_progress_tracker(request: Request) -> ProgressTracker:
    """Return the progress tracker from application state."""
    return request.app.state.progress_tracker


IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
RetrievalDep = Annotated[RetrievalService, Depends(_get_retrieval_service)]
CompletionDep = Annotated[GroundedCompletionService, Depends(_get_completion_service)]
TrackerDep = Annotated[ProgressTracker, Depends(_get_progress_tracker)]


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=201,
    summary="Register an uploaded file",
)
async def register_document(
    body: RegisterDocumentRequest,
    ingestion: IngestionDep,
) -> DocumentResponse:
    """Add the file's metadata to the registry so it can be ingested."""
    document = await ingestion.register_document(
        name=body.name,
        media_type=body.media_type,
        collection_id=body.collection_id,
        size_bytes=body.size_bytes,
        storage_path=body.storage_path,
        document_id=body.document_id,
    )
    return DocumentResponse(**document.model_dump())


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteDocumentResponse,
    summary="Delete a document and all of its chunks",
)
async def delete_document(document_id: str, ingestion: IngestionDep) -> DeleteDocumentResponse:
    removed = await ingestion.delete_document(document_id)
    return DeleteDocumentResponse(document_id=document_id, chunks_removed=removed)


@router.get(
    "/collections/{collection_id}/documents",
    response_model=list[DocumentResponse],
    summary="List the documents registered in a collection",
)
async def list_documents(collection_id: str, ingestion: IngestionDep) -> list[DocumentResponse]:
    documents = await ingestion.list_documents(collection_id)
    return [DocumentResponse(**d.model_dump()) for d in documents]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/ingest",
    response_model=IngestResponse,
    summary="Ingest a registered document",
)
async def ingest_document(body: IngestRequest, ingestion: IngestionDep) -> IngestResponse:
    """Run extraction, chunking, embedding and storage for one document.

    A ``partial`` or ``failed`` status is a normal response; only errors
    that abort the run (unknown document, unreadable file, storage failure)
    produce an error status code.
    """
    result = await ingestion.ingest(body.file_id, extracted_text=body.extracted_text)
    return IngestResponse(**result.model_dump(mode="json"))


@router.get(
    "/ingest/{document_id}/status",
    response_model=IngestionStatusResponse,
    summary="Get current ingestion progress",
)
async def get_ingestion_status(document_id: str, tracker: TrackerDep) -> IngestionStatusResponse:
    """Return the stage, progress percentage and chunk counters."""
    if not tracker.is_tracked(document_id):
        raise DocumentNotFoundError(
            message=f"No ingestion recorded for document: {document_id}",
            document_id=document_id,
        )
    status = tracker.get_status(document_id)
    return IngestionStatusResponse(
        document_id=document_id,
        stage=status.stage.value,
        progress=status.progress,
        message=status.message or None,
        chunks_done=status.chunks_done,
        chunks_total=status.chunks_total,
    )


# ---------------------------------------------------------------------------
# Retrieval and answers
# ---------------------------------------------------------------------------


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Similarity search over stored chunks",
)
async def search(body: SearchRequest, retrieval: RetrievalDep) -> SearchResponse:
    response = await retrieval.search(
        RetrievalQuery(
            query=body.query,
            scope_id=body.scope_id,
            max_results=(
                retrieval.default_max_results if body.max_results is None else body.max_results
            ),
            threshold=retrieval.default_threshold if body.threshold is None else body.threshold,
        )
    )
    return SearchResponse(
        results=response.results,
        query=response.query,
        result_count=response.result_count,
    )


@router.post(
    "/answer",
    response_model=GroundedAnswerResponse,
    summary="Answer a conversation from a collection's files",
)
async def answer(body: AnswerRequest, completion: CompletionDep) -> GroundedAnswerResponse:
    conversation = [ChatMessage(role=m.role, content=m.content) for m in body.messages]
    result = await completion.ask(
        conversation,
        scope_id=body.scope_id,
        max_results=body.max_results,
        threshold=body.threshold,
        temperature=body.temperature,
        max_tokens=body.max_tokens,
    )
    return GroundedAnswerResponse(
        content=result.content,
        grounded=result.grounded,
        sources=result.sources,
    )


@router.post(
    "/briefings",
    response_model=GroundedAnswerResponse,
    summary="Generate a markdown briefing",
)
async def create_briefing(body: BriefingRequest, completion: CompletionDep) -> GroundedAnswerResponse:
    result = await completion.generate_briefing(body.title, body.request, scope_id=body.scope_id)
    return GroundedAnswerResponse(
        content=result.content,
        grounded=result.grounded,
        sources=result.sources,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    vector_store: IVectorStoreProvider | None = getattr(request.app.state, "vector_store", None)
    if vector_store is not None:
        try:
            providers["vector_store_chunks"] = await vector_store.count()
            providers["vector_store"] = True
        except BriefRagError as exc:
            _logger.warning("health_vector_store_failed", error=str(exc))
            providers["vector_store"] = False
            providers["vector_store_chunks"] = 0

    critical_ok = providers.get("embedding", False) and providers.get("vector_store", False)
    if critical_ok and providers.get("llm", False):
        status = "healthy"
    elif critical_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=getattr(request.app.state, "version", "0.1.0"),
        providers=providers,
    )

"""briefrag FastAPI application entry point.

Wires together providers, services and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and
configures structured logging.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from briefrag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestContextMiddleware,
    configure_cors,
)
from briefrag.api.routes import router as api_router
from briefrag.config.loader import load_config
from briefrag.config.settings import Settings
from briefrag.interfaces.file_storage import IFileStorage
from briefrag.pipeline.progress_tracker import ProgressTracker
from briefrag.providers.documents.sqlite_document_registry import SQLiteDocumentRegistry
from briefrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from briefrag.providers.llm.openai_provider import OpenAILLMProvider
from briefrag.providers.storage.http_file_storage import HttpFileStorage
from briefrag.providers.storage.local_file_storage import LocalFileStorage
from briefrag.providers.vector_store.chromadb_provider import ChromaDBProvider
from briefrag.services.grounded_completion import GroundedCompletionService
from briefrag.services.ingestion.chunker import TextChunker
from briefrag.services.ingestion.embedding_runner import EmbeddingRunner
from briefrag.services.ingestion.ingestion_service import IngestionService
from briefrag.services.ingestion.source_processors.pdf_processor import PDFLayoutExtractor
from briefrag.services.ingestion.text_extractor import TextExtractor
from briefrag.services.retrieval_service import RetrievalService
from briefrag.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings.config_path, settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)

_APP_VERSION = str(config.get("app", {}).get("version", "0.1.0"))


# ---------------------------------------------------------------------------
# Provider construction
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> OpenAIEmbeddingProvider:
    return OpenAIEmbeddingProvider(
        app_settings.embedding_config(),
        dimension=app_settings.embedding_dimension,
        token_ceiling=app_settings.embedding_token_ceiling,
        backoff_base=app_settings.embedding_backoff_base,
        backoff_max=app_settings.embedding_backoff_max,
    )


def _build_llm_provider(app_settings: Settings) -> OpenAILLMProvider:
    return OpenAILLMProvider(
        app_settings.completion_config(),
        backoff_base=app_settings.embedding_backoff_base,
        backoff_max=app_settings.embedding_backoff_max,
    )


def _build_file_storage(app_settings: Settings) -> IFileStorage:
    """Serve raw files over HTTP when a base URL is set, else from disk."""
    if app_settings.file_storage_base_url:
        headers = (
            {"Authorization": f"Bearer {app_settings.file_storage_token}"}
            if app_settings.file_storage_token
            else None
        )
        return HttpFileStorage(app_settings.file_storage_base_url, headers=headers)
    return LocalFileStorage(app_settings.file_storage_dir)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service.

    Returns a dict whose keys become ``app.state`` attributes.
    """
    embedding_provider = _build_embedding_provider(app_settings)
    llm_provider = _build_llm_provider(app_settings)
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        dimension=embedding_provider.get_dimension(),
    )
    registry = SQLiteDocumentRegistry(app_settings.documents_db_path)
    file_storage = _build_file_storage(app_settings)
    progress_tracker = ProgressTracker()

    extractor = TextExtractor(
        layout_extractor=PDFLayoutExtractor(),
        max_units=app_settings.extraction_max_pages,
        min_length=app_settings.extraction_min_text_length,
    )
    chunker = TextChunker(
        max_chunk_size=app_settings.chunk_max_size,
        overlap=app_settings.chunk_overlap,
    )
    runner = EmbeddingRunner(embedding_provider, concurrency=app_settings.embedding_concurrency)

    ingestion_service = IngestionService(
        registry=registry,
        file_storage=file_storage,
        extractor=extractor,
        chunker=chunker,
        embedding_runner=runner,
        vector_store=vector_store,
        progress_tracker=progress_tracker,
        ingestion_concurrency=app_settings.ingestion_concurrency,
    )
    retrieval_service = RetrievalService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        registry=registry,
        default_max_results=app_settings.retrieval_max_results,
        default_threshold=app_settings.retrieval_threshold,
    )
    completion_service = GroundedCompletionService(
        llm=llm_provider,
        retrieval=retrieval_service,
        temperature=app_settings.completion_temperature,
        max_tokens=app_settings.completion_max_tokens,
    )

    provider_registry = {
        "embedding": embedding_provider.is_available(),
        "llm": llm_provider.is_available(),
        "file_storage": file_storage.get_provider_name(),
    }

    return {
        "embedding_provider": embedding_provider,
        "llm_provider": llm_provider,
        "vector_store": vector_store,
        "registry": registry,
        "file_storage": file_storage,
        "progress_tracker": progress_tracker,
        "ingestion_service": ingestion_service,
        "retrieval_service": retrieval_service,
        "completion_service": completion_service,
        "provider_registry": provider_registry,
        "version": _APP_VERSION,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = build_components(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["registry"].initialize()

    _logger.info(
        "app_startup",
        version=_APP_VERSION,
        environment=settings.app_env,
        embedding_model=settings.openai_embedding_model,
        chat_model=settings.openai_chat_model,
        providers=components["provider_registry"],
    )

    yield

    file_storage = components["file_storage"]
    if isinstance(file_storage, HttpFileStorage):
        await file_storage.aclose()
    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="briefrag API",
        version=_APP_VERSION,
        description=(
            "Ingest uploaded documents into a vector store, search them by "
            "similarity, and generate answers and briefings grounded in the "
            "retrieved passages."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestContextMiddleware)
    configure_cors(application, allowed_origins=config.get("api", {}).get("cors_origins"))

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "briefrag.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )

"""Standalone CLI for managing the briefrag document corpus.

Usage::

    python -m briefrag.cli.ingest file --path report.pdf --collection q4-review

    python -m briefrag.cli.ingest search --query "invoice total" --collection q4-review

    python -m briefrag.cli.ingest delete --document-id 3f1c...

    python -m briefrag.cli.ingest list --collection q4-review

    python -m briefrag.cli.ingest stats

The CLI shares the settings (``.env`` / environment) of the API server, so
it reads and writes the same vector store and document registry.
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Any

from briefrag.config.settings import Settings
from briefrag.utils.errors import BriefRagError

_FALLBACK_MEDIA_TYPE = "text/plain"


def _guess_media_type(path: Path) -> str:
    if path.suffix.lower() in {".md", ".markdown"}:
        return "text/markdown"
    media_type, _ = mimetypes.guess_type(path.name)
    return media_type or _FALLBACK_MEDIA_TYPE


def _build_services(app_settings: Settings, storage_root: Path | None = None) -> dict[str, Any]:
    """Construct the services a command needs.

    When *storage_root* is given, raw files are read from that directory
    instead of the configured upload directory.
    """
    from briefrag.providers.documents.sqlite_document_registry import SQLiteDocumentRegistry
    from briefrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
    from briefrag.providers.storage.local_file_storage import LocalFileStorage
    from briefrag.providers.vector_store.chromadb_provider import ChromaDBProvider
    from briefrag.services.ingestion.chunker import TextChunker
    from briefrag.services.ingestion.embedding_runner import EmbeddingRunner
    from briefrag.services.ingestion.ingestion_service import IngestionService
    from briefrag.services.ingestion.source_processors.pdf_processor import PDFLayoutExtractor
    from briefrag.services.ingestion.text_extractor import TextExtractor
    from briefrag.services.retrieval_service import RetrievalService

    embedding_provider = OpenAIEmbeddingProvider(
        app_settings.embedding_config(),
        dimension=app_settings.embedding_dimension,
        token_ceiling=app_settings.embedding_token_ceiling,
        backoff_base=app_settings.embedding_backoff_base,
        backoff_max=app_settings.embedding_backoff_max,
    )
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        dimension=embedding_provider.get_dimension(),
    )
    registry = SQLiteDocumentRegistry(app_settings.documents_db_path)
    file_storage = LocalFileStorage(storage_root or app_settings.file_storage_dir)

    ingestion = IngestionService(
        registry=registry,
        file_storage=file_storage,
        extractor=TextExtractor(
            layout_extractor=PDFLayoutExtractor(),
            max_units=app_settings.extraction_max_pages,
            min_length=app_settings.extraction_min_text_length,
        ),
        chunker=TextChunker(app_settings.chunk_max_size, app_settings.chunk_overlap),
        embedding_runner=EmbeddingRunner(
            embedding_provider, concurrency=app_settings.embedding_concurrency
        ),
        vector_store=vector_store,
        ingestion_concurrency=app_settings.ingestion_concurrency,
    )
    retrieval = RetrievalService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        registry=registry,
        default_max_results=app_settings.retrieval_max_results,
        default_threshold=app_settings.retrieval_threshold,
    )
    return {
        "embedding_provider": embedding_provider,
        "vector_store": vector_store,
        "registry": registry,
        "ingestion": ingestion,
        "retrieval": retrieval,
    }


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_file(args: argparse.Namespace, services: dict[str, Any]) -> int:
    path = Path(args.path)
    media_type = args.media_type or _guess_media_type(path)
    print(f"Ingesting file: {path.name} ({media_type})")
    print(f"  Collection: {args.collection}")

    await services["registry"].initialize()
    document = await services["ingestion"].register_document(
        name=args.name or path.name,
        media_type=media_type,
        collection_id=args.collection,
        size_bytes=path.stat().st_size,
        storage_path=path.name,
    )
    result = await services["ingestion"].ingest(document.document_id)

    print("\nIngestion complete:")
    print(f"  Document ID:     {result.document_id}")
    print(f"  Status:          {result.status.value}")
    print(f"  Chunks:          {result.chunks_embedded}/{result.chunks_total} embedded")
    if result.chunks_skipped:
        print(f"  Skipped (size):  {result.chunks_skipped}")
    if result.chunks_failed:
        print(f"  Failed:          {result.chunks_failed}")
    if result.units_skipped:
        print(f"  Pages skipped:   {result.units_skipped}")
    print(f"  Time:            {result.ingestion_time:.2f}s")
    return 0 if result.status.value != "failed" else 1


async def _handle_search(args: argparse.Namespace, services: dict[str, Any]) -> int:
    await services["registry"].initialize()
    results = await services["retrieval"].retrieve(
        args.query,
        scope_id=args.collection,
        max_results=args.max_results,
        threshold=args.threshold,
    )
    if not results:
        print("No matching passages.")
        return 0

    print(f"{len(results)} result(s) for: {args.query}\n")
    for position, result in enumerate(results, start=1):
        preview = result.content[:200] + ("..." if len(result.content) > 200 else "")
        print(
            f"[{position}] {result.file_name} "
            f"(chunk {result.chunk_index + 1}/{result.total_chunks}, "
            f"similarity {result.similarity:.3f})"
        )
        print(f"    {preview}\n")
    return 0


async def _handle_delete(args: argparse.Namespace, services: dict[str, Any]) -> int:
    await services["registry"].initialize()
    removed = await services["ingestion"].delete_document(args.document_id)
    print(f"Deleted document {args.document_id} ({removed} chunks).")
    return 0


async def _handle_list(args: argparse.Namespace, services: dict[str, Any]) -> int:
    await services["registry"].initialize()
    documents = await services["ingestion"].list_documents(args.collection)
    if not documents:
        print(f"No documents in collection {args.collection}.")
        return 0

    print(f"{len(documents)} document(s) in {args.collection}:")
    for document in documents:
        print(f"  {document.document_id}  {document.name} ({document.media_type}, {document.size_bytes} bytes)")
    return 0


async def _handle_stats(services: dict[str, Any]) -> int:
    vector_store = services["vector_store"]
    embedding_provider = services["embedding_provider"]
    total = await vector_store.count()

    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Vector store:     {vector_store.get_provider_name()}")
    print(f"  Embedding model:  {embedding_provider.get_provider_name()}")
    print(f"  Dimension:        {embedding_provider.get_dimension()}")
    print(f"  Total chunks:     {total}")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m briefrag.cli.ingest",
        description="Manage the briefrag document corpus.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Corpus commands")

    # -- file --
    file_parser = subparsers.add_parser("file", help="Register and ingest a local file")
    file_parser.add_argument("--path", required=True, help="Path to the file")
    file_parser.add_argument("--collection", required=True, help="Owning collection id")
    file_parser.add_argument("--name", default=None, help="Display name (default: file name)")
    file_parser.add_argument(
        "--media-type",
        dest="media_type",
        default=None,
        help="MIME type (default: guessed from the extension)",
    )

    # -- search --
    search_parser = subparsers.add_parser("search", help="Similarity search")
    search_parser.add_argument("--query", required=True, help="Free-text query")
    search_parser.add_argument("--collection", default=None, help="Restrict to one collection")
    search_parser.add_argument("--max-results", dest="max_results", type=int, default=None)
    search_parser.add_argument("--threshold", type=float, default=None)

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete a document and its chunks")
    delete_parser.add_argument("--document-id", dest="document_id", required=True)

    # -- list --
    list_parser = subparsers.add_parser("list", help="List the documents of a collection")
    list_parser.add_argument("--collection", required=True, help="Collection id")

    # -- stats --
    subparsers.add_parser("stats", help="Show corpus statistics")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run(argv: list[str] | None = None, app_settings: Settings | None = None) -> int:
    """Parse *argv*, dispatch to a handler and return the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    app_settings = app_settings or Settings()

    if args.command == "file":
        path = Path(args.path)
        if not path.is_file():
            print(f"Error: file not found: {path}", file=sys.stderr)
            return 1
        services = _build_services(app_settings, storage_root=path.resolve().parent)
    else:
        services = _build_services(app_settings)

    try:
        if args.command == "file":
            return asyncio.run(_handle_file(args, services))
        if args.command == "search":
            return asyncio.run(_handle_search(args, services))
        if args.command == "delete":
            return asyncio.run(_handle_delete(args, services))
        if args.command == "list":
            return asyncio.run(_handle_list(args, services))
        return asyncio.run(_handle_stats(services))
    except BriefRagError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main() -> None:
    """CLI entry point for the corpus tool."""
    from briefrag.utils.logging import configure_logging

    configure_logging(log_level="INFO")
    sys.exit(run())


if __name__ == "__main__":
    main()

"""SQLite-backed source document registry.

Persists :class:`~briefrag.models.document.SourceDocument` rows to a local
SQLite database (``data/documents.db`` by default) with ``aiosqlite``.
Each operation opens its own connection, so the registry is safe to share
between concurrent ingestion tasks.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from briefrag.interfaces.document_registry import IDocumentRegistry
from briefrag.models.document import SourceDocument
from briefrag.utils.errors import DuplicateDocumentError, StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    document_id    TEXT    PRIMARY KEY,
    name           TEXT    NOT NULL,
    size_bytes     INTEGER NOT NULL DEFAULT 0,
    media_type     TEXT    NOT NULL,
    collection_id  TEXT    NOT NULL,
    storage_path   TEXT    NOT NULL DEFAULT '',
    created_at     TEXT    NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection_id);",
]

_COLUMNS = "document_id, name, size_bytes, media_type, collection_id, storage_path, created_at"

_INSERT_SQL = f"INSERT INTO documents ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?);"

_SELECT_ONE_SQL = f"SELECT {_COLUMNS} FROM documents WHERE document_id = ?;"

_SELECT_BY_COLLECTION_SQL = (
    f"SELECT {_COLUMNS} FROM documents WHERE collection_id = ? ORDER BY created_at ASC;"
)

_DELETE_SQL = "DELETE FROM documents WHERE document_id = ?;"

# SQLite's default bind-parameter limit is 999 on older builds.
_IN_CLAUSE_PAGE = 500


class SQLiteDocumentRegistry(IDocumentRegistry):
    """SQLite-backed document catalogue."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE_SQL)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not initialize document registry: {exc}", "sqlite") from exc
        logger.info("document_registry_initialized", path=str(self._db_path))

    async def add(self, document: SourceDocument) -> SourceDocument:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _INSERT_SQL,
                    (
                        document.document_id,
                        document.name,
                        document.size_bytes,
                        document.media_type,
                        document.collection_id,
                        document.storage_path,
                        document.created_at.isoformat(),
                    ),
                )
                await db.commit()
        except sqlite3.IntegrityError as exc:
            raise DuplicateDocumentError(
                provider_name="sqlite", document_id=document.document_id
            ) from exc
        except sqlite3.Error as exc:
            raise StorageError(f"Could not register document: {exc}", "sqlite") from exc

        return document

    async def get(self, document_id: str) -> SourceDocument | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_ONE_SQL, (document_id,))
                row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Document lookup failed: {exc}", "sqlite") from exc
        return self._row_to_document(row) if row else None

    async def get_many(self, document_ids: list[str]) -> dict[str, SourceDocument]:
        """Batched lookup; unknown ids are simply absent from the result."""
        unique_ids = list(dict.fromkeys(document_ids))
        if not unique_ids:
            return {}

        found: dict[str, SourceDocument] = {}
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                for start in range(0, len(unique_ids), _IN_CLAUSE_PAGE):
                    page = unique_ids[start : start + _IN_CLAUSE_PAGE]
                    placeholders = ", ".join("?" for _ in page)
                    cursor = await db.execute(
                        f"SELECT {_COLUMNS} FROM documents WHERE document_id IN ({placeholders});",
                        page,
                    )
                    for row in await cursor.fetchall():
                        document = self._row_to_document(row)
                        found[document.document_id] = document
        except sqlite3.Error as exc:
            raise StorageError(f"Batched document lookup failed: {exc}", "sqlite") from exc
        return found

    async def list_by_collection(self, collection_id: str) -> list[SourceDocument]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_BY_COLLECTION_SQL, (collection_id,))
                rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Collection listing failed: {exc}", "sqlite") from exc
        return [self._row_to_document(r) for r in rows]

    async def delete(self, document_id: str) -> bool:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_DELETE_SQL, (document_id,))
                await db.commit()
                deleted = cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise StorageError(f"Document delete failed: {exc}", "sqlite") from exc
        logger.info("document_unregistered", document_id=document_id, existed=deleted)
        return deleted

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> SourceDocument:
        return SourceDocument(
            document_id=row["document_id"],
            name=row["name"],
            size_bytes=row["size_bytes"],
            media_type=row["media_type"],
            collection_id=row["collection_id"],
            storage_path=row["storage_path"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

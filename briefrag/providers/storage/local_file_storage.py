"""Local-directory file storage.

Reads uploaded files from a root directory.  Paths are resolved relative
to the root and may not escape it.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from briefrag.interfaces.file_storage import IFileStorage
from briefrag.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)


class LocalFileStorage(IFileStorage):
    """File storage rooted at a local directory."""

    def __init__(self, root: str | Path = "data/uploads") -> None:
        self._root = Path(root).resolve()

    async def read(self, path: str) -> bytes:
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root):
            raise StorageError(f"Path escapes storage root: {path}", self.get_provider_name())
        try:
            data = await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise StorageError(f"Stored file not found: {path}", self.get_provider_name()) from exc
        except OSError as exc:
            raise StorageError(f"Could not read {path}: {exc}", self.get_provider_name()) from exc
        logger.debug("file_read", path=path, size_bytes=len(data))
        return data

    def get_provider_name(self) -> str:
        return "local_storage"

"""Abstract base class for reading stored file bytes.

Uploading and bucket management live outside briefrag; ingestion only
needs to read back what was stored.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IFileStorage(ABC):
    """Read-only access to uploaded files."""

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Return the bytes stored at *path*.

        Raises
        ------
        briefrag.utils.errors.StorageError
            If the file is missing or cannot be fetched.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and error messages."""

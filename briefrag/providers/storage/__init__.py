"""File storage implementations."""

from briefrag.providers.storage.http_file_storage import HttpFileStorage
from briefrag.providers.storage.local_file_storage import LocalFileStorage

__all__ = ["HttpFileStorage", "LocalFileStorage"]

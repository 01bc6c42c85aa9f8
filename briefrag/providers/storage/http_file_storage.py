"""HTTP file storage.

Fetches uploaded files from an object store or CDN exposed over HTTP,
``GET {base_url}/{path}``.  A shared ``httpx.AsyncClient`` can be injected;
otherwise one is created with a 30 second timeout.
"""

from __future__ import annotations

import httpx
import structlog

from briefrag.interfaces.file_storage import IFileStorage
from briefrag.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0


class HttpFileStorage(IFileStorage):
    """File storage behind an HTTP base URL."""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    async def read(self, path: str) -> bytes:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._client.get(url, headers=self._headers)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise StorageError(f"Timed out fetching {path}", self.get_provider_name()) from exc
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Fetching {path} failed with HTTP {exc.response.status_code}",
                self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageError(f"Fetching {path} failed: {exc}", self.get_provider_name()) from exc

        logger.debug("file_fetched", path=path, size_bytes=len(response.content))
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()

    def get_provider_name(self) -> str:
        return "http_storage"

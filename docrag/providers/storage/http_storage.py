"""HTTP object storage provider.

Reads and writes objects at ``{base_url}/{storage_path}`` with GET, HEAD
and PUT.  Works against S3-compatible gateways and simple file servers
that accept bearer tokens.
"""

from __future__ import annotations

import httpx
import structlog

from docrag.interfaces.object_storage import IObjectStorage, ObjectMetadata
from docrag.utils.errors import ProviderUnavailableError, StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0


class HttpObjectStorage(IObjectStorage):
    """Object storage behind an HTTP endpoint."""

    def __init__(
        self,
        base_url: str,
        api_token: str = "",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            headers=headers,
            follow_redirects=True,
        )

    # ------------------------------------------------------------------
    # IObjectStorage implementation
    # ------------------------------------------------------------------

    async def get_bytes(self, storage_path: str) -> bytes:
        response = await self._request("GET", storage_path)
        return response.content

    async def get_metadata(self, storage_path: str) -> ObjectMetadata:
        response = await self._request("HEAD", storage_path)
        content_type = response.headers.get("content-type")
        if content_type:
            content_type = content_type.split(";")[0].strip()
        return ObjectMetadata(
            content_type=content_type,
            content_length=int(response.headers.get("content-length", 0)),
        )

    async def put_bytes(
        self,
        storage_path: str,
        data: bytes,
        content_type: str | None = None,
    ) -> None:
        headers = {"Content-Type": content_type} if content_type else None
        await self._request("PUT", storage_path, content=data, headers=headers)
        logger.debug("object_stored", storage_path=storage_path, size=len(data))

    def get_provider_name(self) -> str:
        return "http"

    async def close(self) -> None:
        """Close the underlying client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _request(self, method: str, storage_path: str, **kwargs) -> httpx.Response:
        url = "/" + storage_path.lstrip("/")
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderUnavailableError(
                message=f"Storage request timed out: {method} {storage_path}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                message=f"Storage returned HTTP {exc.response.status_code} for {storage_path}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageError(
                message=f"Storage request failed for {storage_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return response

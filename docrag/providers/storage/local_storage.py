"""Filesystem-backed object storage.

Stores objects as plain files below a root directory; the storage path is
the relative file path.  Disk I/O runs in a worker thread so the event loop
is never blocked by large reads.
"""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path

import structlog

from docrag.interfaces.object_storage import IObjectStorage, ObjectMetadata
from docrag.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)


class LocalObjectStorage(IObjectStorage):
    """Object storage rooted at a local directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    # ------------------------------------------------------------------
    # IObjectStorage implementation
    # ------------------------------------------------------------------

    async def get_bytes(self, storage_path: str) -> bytes:
        path = self._resolve(storage_path)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise StorageError(
                message=f"Object not found: {storage_path}",
                provider_name=self.get_provider_name(),
            ) from exc
        except OSError as exc:
            raise StorageError(
                message=f"Could not read {storage_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def get_metadata(self, storage_path: str) -> ObjectMetadata:
        path = self._resolve(storage_path)
        try:
            stat = await asyncio.to_thread(path.stat)
        except FileNotFoundError as exc:
            raise StorageError(
                message=f"Object not found: {storage_path}",
                provider_name=self.get_provider_name(),
            ) from exc

        content_type, _ = mimetypes.guess_type(path.name)
        return ObjectMetadata(content_type=content_type, content_length=stat.st_size)

    async def put_bytes(
        self,
        storage_path: str,
        data: bytes,
        content_type: str | None = None,
    ) -> None:
        path = self._resolve(storage_path)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StorageError(
                message=f"Could not write {storage_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("object_stored", storage_path=storage_path, size=len(data))

    def get_provider_name(self) -> str:
        return "local"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, storage_path: str) -> Path:
        path = (self._root / storage_path.lstrip("/")).resolve()
        if not path.is_relative_to(self._root):
            raise StorageError(
                message=f"Storage path escapes the storage root: {storage_path}",
                provider_name=self.get_provider_name(),
            )
        return path

"""Abstract base class for raw-file object storage.

Uploaded files live in object storage under a ``storage_path`` key.  The
pipeline only reads from it; ``put_bytes`` exists for registration tooling
and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict


class ObjectMetadata(BaseModel):
    """Storage-side metadata for a stored object."""

    model_config = ConfigDict(frozen=True)

    content_type: str | None = None
    content_length: int = 0


# Concrete implementations:
#   LocalObjectStorage -- files under a root directory
#   HttpObjectStorage  -- GET/HEAD/PUT against an HTTP endpoint (httpx)
# Located in: docrag/providers/storage/
class IObjectStorage(ABC):
    """Contract for fetching raw file bytes by storage path."""

    @abstractmethod
    async def get_bytes(self, storage_path: str) -> bytes:
        """Return the full contents stored at *storage_path*.

        Raises
        ------
        docrag.utils.errors.StorageError
            If the object does not exist or cannot be read.
        """

    @abstractmethod
    async def get_metadata(self, storage_path: str) -> ObjectMetadata:
        """Return content type and length without downloading the body.

        Raises
        ------
        docrag.utils.errors.StorageError
            If the object does not exist.
        """

    @abstractmethod
    async def put_bytes(
        self,
        storage_path: str,
        data: bytes,
        content_type: str | None = None,
    ) -> None:
        """Store *data* at *storage_path*, overwriting any existing object."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"local"`` or ``"http"``."""

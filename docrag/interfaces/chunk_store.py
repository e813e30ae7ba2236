"""Abstract base class for embedded-chunk persistence.

Only the write path and the reads needed for statistics, summaries and
re-processing are part of this contract; similarity search lives elsewhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docrag.models.chunks import ChunkRecord


# Concrete implementations: SQLiteChunkStore
# Located in: docrag/providers/database/
class IChunkStore(ABC):
    """Contract for storing and removing embedded chunks."""

    @abstractmethod
    async def insert_chunks(
        self,
        chunks: list[ChunkRecord],
        replace_existing: bool = False,
    ) -> int:
        """Insert all *chunks* in one transaction.

        Parameters
        ----------
        chunks:
            Rows to insert.  All rows of one call belong to the same file.
        replace_existing:
            When ``True``, the file's previous rows are deleted inside the
            same transaction so readers see either the old set or the new
            set, never a mix.

        Returns
        -------
        int
            Number of rows inserted.

        Raises
        ------
        docrag.utils.errors.ChunkStoreError
            If any row fails; no rows from this call remain visible.
        """

    @abstractmethod
    async def delete_chunks_for_file(self, file_id: str) -> int:
        """Delete every chunk of *file_id*.  Idempotent; returns rows removed."""

    @abstractmethod
    async def delete_chunks_for_project(self, project_id: str) -> int:
        """Delete every chunk of *project_id*.  Returns rows removed."""

    @abstractmethod
    async def get_chunks_for_file(self, file_id: str) -> list[ChunkRecord]:
        """Return the file's chunks ordered by ``chunk_index``."""

    @abstractmethod
    async def count_chunks_for_file(self, file_id: str) -> int:
        """Return how many chunks are stored for *file_id*."""

    @abstractmethod
    async def get_project_totals(self, project_id: str) -> tuple[int, int]:
        """Return ``(chunk_count, token_sum)`` over all files of the project."""

"""Abstract base class for file-record persistence.

The repository stores :class:`~docrag.models.files.FileRecord` rows and
enforces the field invariants of the status state machine on every write:
``chunk_count`` and ``embedded_at`` are only meaningful when ``completed``
and ``last_error`` only when ``failed``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docrag.models.files import DocumentSummary, EmbeddingStatus, FileRecord


# Concrete implementations: SQLiteFileRepository
# Located in: docrag/providers/database/
class IFileRepository(ABC):
    """Contract for reading and writing file records."""

    @abstractmethod
    async def add_file(self, record: FileRecord) -> FileRecord:
        """Insert a new file record (status ``pending``) and return it."""

    @abstractmethod
    async def get_file(self, file_id: str) -> FileRecord | None:
        """Return the file record, or ``None`` when unknown."""

    @abstractmethod
    async def claim_for_processing(self, file_id: str) -> bool:
        """Atomically move a file to ``processing`` unless it already is.

        Implementations must perform the check and the write as a single
        conditional update so two concurrent claims cannot both succeed.

        Returns
        -------
        bool
            ``True`` if this call claimed the file, ``False`` if the file is
            already ``processing``.

        Raises
        ------
        docrag.utils.errors.FileNotFoundInRepositoryError
            If no record exists for *file_id*.
        """

    @abstractmethod
    async def update_status(
        self,
        file_id: str,
        status: EmbeddingStatus,
        *,
        expected_status: EmbeddingStatus | None = None,
        chunk_count: int = 0,
        last_error: str | None = None,
    ) -> FileRecord | None:
        """Write a status and its dependent fields in a single statement.

        ``completed`` sets ``chunk_count`` and ``embedded_at`` and clears
        ``last_error``; ``failed`` sets ``last_error`` and clears the other
        two; ``pending``/``processing`` clear all three.

        Parameters
        ----------
        expected_status:
            When given, the write only happens if the stored status still
            equals this value (compare-and-set).

        Returns
        -------
        FileRecord | None
            The updated record, or ``None`` when *expected_status* did not
            match and nothing was written.

        Raises
        ------
        docrag.utils.errors.FileNotFoundInRepositoryError
            If no record exists for *file_id*.
        """

    @abstractmethod
    async def list_files(
        self,
        project_id: str,
        status: EmbeddingStatus | None = None,
    ) -> list[FileRecord]:
        """Return the project's files, optionally filtered by status."""

    @abstractmethod
    async def list_pending(self, project_id: str | None = None, limit: int = 50) -> list[FileRecord]:
        """Return files still waiting for embedding, oldest first."""

    @abstractmethod
    async def count_by_status(self, project_id: str) -> dict[EmbeddingStatus, int]:
        """Return the number of files per status (missing statuses count 0)."""

    @abstractmethod
    async def set_document_metadata(self, file_id: str, summary: DocumentSummary) -> None:
        """Attach a generated document summary to the file record."""

"""Guarded status transitions for file records.

Every change of ``embedding_status`` goes through :class:`FileStatusTracker`.
The tracker checks the edge against :data:`ALLOWED_TRANSITIONS` and writes
with a compare-and-set on the status it read, so a concurrent writer that
changed the status in between makes the write fail instead of silently
overwriting.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from docrag.models.files import ALLOWED_TRANSITIONS, EmbeddingStatus, FileRecord
from docrag.utils.errors import (
    FileBusyError,
    FileNotFoundInRepositoryError,
    InvalidTransitionError,
)

if TYPE_CHECKING:
    from docrag.interfaces.file_repository import IFileRepository

logger = structlog.get_logger(logger_name=__name__)


class FileStatusTracker:
    """Owns the ``pending -> processing -> completed | failed`` state machine."""

    def __init__(self, repository: IFileRepository) -> None:
        self._repository = repository

    async def begin(self, file_id: str) -> None:
        """Claim *file_id* for a run.

        Raises
        ------
        FileBusyError
            If the file is already ``processing``.
        FileNotFoundInRepositoryError
            If the file is unknown.
        """
        claimed = await self._repository.claim_for_processing(file_id)
        if not claimed:
            raise FileBusyError(message=f"File {file_id} is already being processed")
        logger.info("file_status_processing", file_id=file_id)

    async def complete(self, file_id: str, chunk_count: int) -> FileRecord:
        record = await self._transition(
            file_id, EmbeddingStatus.COMPLETED, chunk_count=chunk_count
        )
        logger.info("file_status_completed", file_id=file_id, chunks=chunk_count)
        return record

    async def fail(self, file_id: str, message: str) -> FileRecord:
        record = await self._transition(file_id, EmbeddingStatus.FAILED, last_error=message)
        logger.warning("file_status_failed", file_id=file_id, error=message)
        return record

    async def reset(self, file_id: str) -> FileRecord:
        """Move a stuck ``processing`` file back to ``pending``."""
        record = await self._transition(file_id, EmbeddingStatus.PENDING)
        logger.info("file_status_reset", file_id=file_id)
        return record

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _transition(
        self,
        file_id: str,
        target: EmbeddingStatus,
        *,
        chunk_count: int = 0,
        last_error: str | None = None,
    ) -> FileRecord:
        current = await self._repository.get_file(file_id)
        if current is None:
            raise FileNotFoundInRepositoryError(message=f"Unknown file: {file_id}")

        source = current.embedding_status
        if target not in ALLOWED_TRANSITIONS[source]:
            raise InvalidTransitionError(
                message=f"Cannot move file {file_id} from {source.value} to {target.value}"
            )

        updated = await self._repository.update_status(
            file_id,
            target,
            expected_status=source,
            chunk_count=chunk_count,
            last_error=last_error,
        )
        if updated is None:
            raise InvalidTransitionError(
                message=(
                    f"File {file_id} changed status concurrently; "
                    f"expected {source.value} before moving to {target.value}"
                )
            )
        return updated

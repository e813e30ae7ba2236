"""Re-run the pipeline for a file that was already processed (or failed)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from docrag.models.files import EmbeddingStatus
from docrag.models.ingestion import ProcessFileRequest, ProcessingResult
from docrag.utils.errors import DocragError

if TYPE_CHECKING:
    from docrag.interfaces.chunk_store import IChunkStore
    from docrag.interfaces.file_repository import IFileRepository
    from docrag.pipeline.orchestrator import IngestionPipeline, ProgressCallback

logger = structlog.get_logger(logger_name=__name__)


class Reprocessor:
    """Deletes a file's chunks and runs the pipeline again from scratch.

    Reprocessing the same unchanged file yields the same chunk count with
    fresh chunk ids.  A file that is currently ``processing`` is refused.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        repository: IFileRepository,
        chunk_store: IChunkStore,
    ) -> None:
        self._pipeline = pipeline
        self._repository = repository
        self._chunk_store = chunk_store

    async def reprocess(
        self,
        file_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> ProcessingResult:
        try:
            record = await self._repository.get_file(file_id)
            if record is None:
                return ProcessingResult(
                    success=False, file_id=file_id, error=f"Unknown file: {file_id}"
                )
            if record.embedding_status == EmbeddingStatus.PROCESSING:
                logger.warning("reprocess_refused", file_id=file_id, reason="processing")
                return ProcessingResult(
                    success=False,
                    file_id=file_id,
                    error=f"File {file_id} is currently being processed",
                )

            deleted = await self._chunk_store.delete_chunks_for_file(file_id)
        except DocragError as exc:
            logger.error("reprocess_failed", file_id=file_id, error=str(exc))
            return ProcessingResult(success=False, file_id=file_id, error=str(exc))

        logger.info("reprocess_start", file_id=file_id, deleted_chunks=deleted)

        request = ProcessFileRequest(
            file_id=record.file_id,
            storage_path=record.storage_path,
            filename=record.filename,
            mime_type=record.mime_type,
            project_id=record.project_id,
        )
        return await self._pipeline.process_file(request, on_progress=on_progress)

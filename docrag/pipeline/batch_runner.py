"""Sequential multi-file processing with per-file failure isolation."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from docrag.models.ingestion import BatchResult, ProcessFileRequest, ProcessingResult
from docrag.utils.callbacks import invoke_callback

if TYPE_CHECKING:
    from docrag.interfaces.file_repository import IFileRepository
    from docrag.pipeline.orchestrator import IngestionPipeline

logger = structlog.get_logger(logger_name=__name__)

FileCompleteCallback = Callable[[ProcessingResult, int, int], Any]


class BatchRunner:
    """Drives :class:`IngestionPipeline` over many files, one at a time.

    Files are processed strictly in order with a short pause between them
    to stay under the embedding service's rate limits.  One file failing
    never stops the batch; the pipeline already converts failures into
    results.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        repository: IFileRepository,
        file_pause_s: float = 0.5,
    ) -> None:
        self._pipeline = pipeline
        self._repository = repository
        self._file_pause_s = file_pause_s

    async def run(
        self,
        requests: list[ProcessFileRequest],
        on_file_complete: FileCompleteCallback | None = None,
    ) -> BatchResult:
        """Process *requests* sequentially.

        Parameters
        ----------
        requests:
            Files to process, in order.
        on_file_complete:
            Optional sync or async ``(result, index, total)`` callable with
            a 1-based *index*, called after each file.
        """
        total = len(requests)
        results: list[ProcessingResult] = []
        logger.info("batch_start", files=total)

        for index, request in enumerate(requests, start=1):
            if index > 1 and self._file_pause_s > 0:
                await asyncio.sleep(self._file_pause_s)

            result = await self._pipeline.process_file(request)
            results.append(result)
            await invoke_callback(on_file_complete, result, index, total)

        succeeded = sum(1 for r in results if r.success)
        failed = total - succeeded
        logger.info("batch_complete", files=total, succeeded=succeeded, failed=failed)
        return BatchResult(results=results, succeeded=succeeded, failed=failed, total=total)

    async def process_pending(
        self,
        project_id: str | None = None,
        limit: int = 50,
        on_file_complete: FileCompleteCallback | None = None,
    ) -> BatchResult:
        """Process up to *limit* files that are still ``pending``."""
        pending = await self._repository.list_pending(project_id=project_id, limit=limit)
        logger.info("pending_files_found", project_id=project_id, files=len(pending))
        requests = [
            ProcessFileRequest(
                file_id=record.file_id,
                storage_path=record.storage_path,
                filename=record.filename,
                mime_type=record.mime_type,
                project_id=record.project_id,
            )
            for record in pending
        ]
        return await self.run(requests, on_file_complete=on_file_complete)

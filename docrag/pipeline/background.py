"""Tracked background tasks for post-processing document analysis."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from docrag.utils.errors import DocragError

if TYPE_CHECKING:
    from docrag.interfaces.chunk_store import IChunkStore
    from docrag.interfaces.file_repository import IFileRepository
    from docrag.services.ingestion.summarizer import DocumentSummarizer

logger = structlog.get_logger(logger_name=__name__)


class BackgroundAnalysisRunner:
    """Schedules document summaries without blocking the pipeline result.

    Each scheduled analysis is an ``asyncio.Task`` kept in a set until it
    finishes, so it cannot be garbage collected mid-flight and callers can
    wait for all of them with :meth:`drain`.  Failures are logged with the
    originating ``file_id`` and never propagate.
    """

    def __init__(
        self,
        summarizer: DocumentSummarizer,
        repository: IFileRepository,
        chunk_store: IChunkStore,
    ) -> None:
        self._summarizer = summarizer
        self._repository = repository
        self._chunk_store = chunk_store
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def schedule(self, file_id: str, filename: str) -> asyncio.Task[None]:
        task = asyncio.create_task(
            self._analyze(file_id, filename), name=f"document-summary-{file_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("document_summary_scheduled", file_id=file_id)
        return task

    async def drain(self) -> None:
        """Wait until every scheduled analysis has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _analyze(self, file_id: str, filename: str) -> None:
        try:
            chunks = await self._chunk_store.get_chunks_for_file(file_id)
            if not chunks:
                logger.info("document_summary_skipped", file_id=file_id, reason="no chunks")
                return
            summary = await self._summarizer.summarize(
                filename, [c.metadata.original_text for c in chunks]
            )
            await self._repository.set_document_metadata(file_id, summary)
            logger.info("document_summary_stored", file_id=file_id, fallback=summary.fallback)
        except DocragError as exc:
            logger.error("document_summary_task_failed", file_id=file_id, error=str(exc))
        except Exception as exc:
            logger.exception(
                "document_summary_task_crashed",
                file_id=file_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )

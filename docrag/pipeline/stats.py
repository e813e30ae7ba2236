"""Read-only per-project processing statistics."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docrag.models.files import EmbeddingStatus
from docrag.models.ingestion import ProcessingStats

if TYPE_CHECKING:
    from docrag.interfaces.chunk_store import IChunkStore
    from docrag.interfaces.file_repository import IFileRepository


class StatsAggregator:
    def __init__(self, repository: IFileRepository, chunk_store: IChunkStore) -> None:
        self._repository = repository
        self._chunk_store = chunk_store

    async def get_processing_stats(self, project_id: str) -> ProcessingStats:
        counts = await self._repository.count_by_status(project_id)
        chunks, tokens = await self._chunk_store.get_project_totals(project_id)
        return ProcessingStats(
            total_files=sum(counts.values()),
            processed_files=counts.get(EmbeddingStatus.COMPLETED, 0),
            pending_files=counts.get(EmbeddingStatus.PENDING, 0),
            processing_files=counts.get(EmbeddingStatus.PROCESSING, 0),
            failed_files=counts.get(EmbeddingStatus.FAILED, 0),
            total_chunks=chunks,
            total_tokens=tokens,
        )

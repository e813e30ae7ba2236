"""Integration tests for BatchRunner, Reprocessor, StatsAggregator and background summaries."""

from __future__ import annotations

from docrag.models.files import EmbeddingStatus
from docrag.pipeline.background import BackgroundAnalysisRunner
from docrag.pipeline.batch_runner import BatchRunner
from docrag.pipeline.reprocessor import Reprocessor
from docrag.pipeline.stats import StatsAggregator
from docrag.providers.database.sqlite_chunk_store import SQLiteChunkStore
from docrag.services.ingestion.summarizer import DocumentSummarizer
from docrag.utils.errors import ChunkStoreError, LLMError
from tests.conftest import FakeLLMProvider, make_pipeline, paged_text, register_file


async def _register_mixed(storage, repository) -> list:
    """Two good text files around an unsupported one."""
    return [
        await register_file(storage, repository, "f1", "one.txt", b"First document."),
        await register_file(storage, repository, "f2", "two.bin", b"\x00\x01", "application/octet-stream"),
        await register_file(storage, repository, "f3", "three.md", b"# Title\n\nThird document."),
    ]


# ======================================================================
# BatchRunner
# ======================================================================


class TestBatchRunner:
    async def test_failure_does_not_stop_batch(self, pipeline, storage, repository) -> None:
        requests = await _register_mixed(storage, repository)
        seen: list[tuple[str, int, int]] = []

        batch = await BatchRunner(pipeline, repository, file_pause_s=0).run(
            requests,
            on_file_complete=lambda result, index, total: seen.append((result.file_id, index, total)),
        )

        assert batch.total == 3
        assert batch.succeeded == 2
        assert batch.failed == 1
        assert [r.success for r in batch.results] == [True, False, True]
        assert seen == [("f1", 1, 3), ("f2", 2, 3), ("f3", 3, 3)]
        assert (await repository.get_file("f2")).embedding_status == EmbeddingStatus.FAILED

    async def test_empty_batch(self, pipeline, repository) -> None:
        batch = await BatchRunner(pipeline, repository, file_pause_s=0).run([])

        assert batch.total == 0
        assert batch.results == []

    async def test_process_pending_picks_up_only_pending(
        self, pipeline, storage, repository
    ) -> None:
        await _register_mixed(storage, repository)
        await register_file(storage, repository, "other", "x.txt", b"Other project.", project_id="proj-2")
        runner = BatchRunner(pipeline, repository, file_pause_s=0)

        first = await runner.process_pending(project_id="proj-1")
        second = await runner.process_pending(project_id="proj-1")

        assert first.total == 3
        assert second.total == 0
        assert (await repository.get_file("other")).embedding_status == EmbeddingStatus.PENDING

    async def test_process_pending_respects_limit(self, pipeline, storage, repository) -> None:
        await _register_mixed(storage, repository)

        batch = await BatchRunner(pipeline, repository, file_pause_s=0).process_pending(limit=1)

        assert [r.file_id for r in batch.results] == ["f1"]


# ======================================================================
# Reprocessor
# ======================================================================


class TestReprocessor:
    async def test_reprocess_is_idempotent(self, pipeline, storage, repository, chunk_store) -> None:
        request = await register_file(storage, repository, "f1", "manual.txt", paged_text().encode())
        await pipeline.process_file(request)
        before = await chunk_store.get_chunks_for_file("f1")

        result = await Reprocessor(pipeline, repository, chunk_store).reprocess("f1")

        after = await chunk_store.get_chunks_for_file("f1")
        assert result.success is True
        assert len(after) == len(before) == 4
        assert [c.chunk_text for c in after] == [c.chunk_text for c in before]
        assert {c.chunk_id for c in before}.isdisjoint({c.chunk_id for c in after})
        assert (await repository.get_file("f1")).chunk_count == 4

    async def test_reprocess_failed_file(self, pipeline, storage, repository, chunk_store) -> None:
        request = await register_file(storage, repository, "f1", "a.txt", b"Recovered text.")
        await pipeline.status_tracker.begin("f1")
        await pipeline.status_tracker.fail("f1", "earlier outage")

        result = await Reprocessor(pipeline, repository, chunk_store).reprocess(request.file_id)

        record = await repository.get_file("f1")
        assert result.success is True
        assert record.embedding_status == EmbeddingStatus.COMPLETED
        assert record.last_error is None

    async def test_processing_file_is_refused(self, pipeline, storage, repository, chunk_store) -> None:
        await register_file(storage, repository, "f1", "a.txt", b"Some text.")
        await repository.claim_for_processing("f1")

        result = await Reprocessor(pipeline, repository, chunk_store).reprocess("f1")

        assert result.success is False
        assert "currently being processed" in result.error
        assert (await repository.get_file("f1")).embedding_status == EmbeddingStatus.PROCESSING

    async def test_unknown_file(self, pipeline, repository, chunk_store) -> None:
        result = await Reprocessor(pipeline, repository, chunk_store).reprocess("nope")

        assert result.success is False
        assert result.error == "Unknown file: nope"

    async def test_chunk_delete_failure_is_returned(
        self, pipeline, storage, repository, db_path
    ) -> None:
        class DeleteFailingChunkStore(SQLiteChunkStore):
            async def delete_chunks_for_file(self, file_id: str) -> int:
                raise ChunkStoreError(message="disk I/O error", provider_name="sqlite")

        request = await register_file(storage, repository, "f1", "manual.txt", paged_text().encode())
        await pipeline.process_file(request)
        reprocessor = Reprocessor(pipeline, repository, DeleteFailingChunkStore(db_path=db_path))

        result = await reprocessor.reprocess("f1")

        assert result.success is False
        assert result.file_id == "f1"
        assert result.error == "[sqlite] disk I/O error"
        assert (await repository.get_file("f1")).embedding_status == EmbeddingStatus.COMPLETED


# ======================================================================
# StatsAggregator
# ======================================================================


class TestStats:
    async def test_stats_after_batch(self, pipeline, storage, repository, chunk_store) -> None:
        await _register_mixed(storage, repository)
        await register_file(storage, repository, "f4", "later.txt", b"Not processed yet.")
        await BatchRunner(pipeline, repository, file_pause_s=0).process_pending(limit=3)

        stats = await StatsAggregator(repository, chunk_store).get_processing_stats("proj-1")

        assert stats.total_files == 4
        assert stats.processed_files == 2
        assert stats.failed_files == 1
        assert stats.pending_files == 1
        assert stats.processing_files == 0
        assert stats.total_chunks == 2
        assert stats.total_tokens > 0

    async def test_empty_project(self, repository, chunk_store) -> None:
        stats = await StatsAggregator(repository, chunk_store).get_processing_stats("nobody")

        assert stats.total_files == 0
        assert stats.total_chunks == 0


# ======================================================================
# Background document summaries
# ======================================================================


class TestBackgroundSummaries:
    async def test_summary_is_stored_after_success(
        self, storage, repository, chunk_store, embedding_provider
    ) -> None:
        llm = FakeLLMProvider(['{"summary": "A manual.", "topics": ["setup"], "language": "en"}'])
        background = BackgroundAnalysisRunner(DocumentSummarizer(llm), repository, chunk_store)
        pipeline = make_pipeline(
            storage, repository, chunk_store, embedding_provider, background=background
        )
        request = await register_file(storage, repository, "f1", "manual.txt", paged_text().encode())

        result = await pipeline.process_file(request)
        await background.drain()

        assert result.success is True
        assert background.pending_count == 0
        metadata = (await repository.get_file("f1")).document_metadata
        assert metadata.summary == "A manual."
        assert metadata.fallback is False
        assert "manual.txt" in llm.prompts[0]

    async def test_llm_failure_stores_fallback(
        self, storage, repository, chunk_store, embedding_provider
    ) -> None:
        llm = FakeLLMProvider([LLMError(message="model offline")])
        background = BackgroundAnalysisRunner(DocumentSummarizer(llm), repository, chunk_store)
        pipeline = make_pipeline(
            storage, repository, chunk_store, embedding_provider, background=background
        )
        request = await register_file(storage, repository, "f1", "notes.txt", b"Some notes.")

        await pipeline.process_file(request)
        await background.drain()

        record = await repository.get_file("f1")
        assert record.embedding_status == EmbeddingStatus.COMPLETED
        assert record.document_metadata.fallback is True
        assert record.document_metadata.summary == "Document: notes.txt"

    async def test_failed_run_schedules_nothing(
        self, storage, repository, chunk_store, embedding_provider
    ) -> None:
        llm = FakeLLMProvider()
        background = BackgroundAnalysisRunner(DocumentSummarizer(llm), repository, chunk_store)
        pipeline = make_pipeline(
            storage, repository, chunk_store, embedding_provider, background=background
        )
        request = await register_file(storage, repository, "f1", "blank.txt", b"   ")

        result = await pipeline.process_file(request)

        assert result.success is False
        assert background.pending_count == 0
        assert llm.prompts == []

    async def test_task_errors_are_contained(
        self, storage, repository, chunk_store, embedding_provider
    ) -> None:
        class ExplodingSummarizer:
            async def summarize(self, filename, chunk_texts):
                raise RuntimeError("unexpected")

        background = BackgroundAnalysisRunner(ExplodingSummarizer(), repository, chunk_store)
        pipeline = make_pipeline(
            storage, repository, chunk_store, embedding_provider, background=background
        )
        request = await register_file(storage, repository, "f1", "notes.txt", b"Some notes.")

        result = await pipeline.process_file(request)
        await background.drain()

        record = await repository.get_file("f1")
        assert result.success is True
        assert record.embedding_status == EmbeddingStatus.COMPLETED
        assert record.document_metadata is None

    async def test_file_without_chunks_is_skipped(self, repository, chunk_store) -> None:
        llm = FakeLLMProvider()
        background = BackgroundAnalysisRunner(DocumentSummarizer(llm), repository, chunk_store)

        background.schedule("missing", "missing.txt")
        await background.drain()

        assert background.pending_count == 0
        assert llm.prompts == []

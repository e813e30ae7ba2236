"""Single-file ingestion pipeline.

Runs one file through extract -> chunk -> enrich -> embed -> store and owns
its status transitions.  The contract with callers is simple: a
:class:`ProcessingResult` is always returned and exceptions never escape.
Every exit after a successful claim goes through an explicit status write
(``completed`` or ``failed``), so a file is never left ``processing`` by a
run that finished.
Chunks stored by a run that then fails are deleted again before the failure
is recorded.  Log lines emitted during a run carry ``file_id`` and
``project_id`` through structlog context variables.

Progress is reported as ``(step, fraction)``:

    "Processing document"    0.2
    "Generating embeddings"  0.5 .. 0.8
    "Storing chunks"         0.8
    "Complete"               1.0
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from docrag.models.chunks import ChunkMetadata, ChunkRecord, EnrichedChunk
from docrag.models.ingestion import ProcessFileRequest, ProcessingEstimate, ProcessingResult
from docrag.utils.callbacks import invoke_callback
from docrag.utils.errors import (
    DocragError,
    ExtractionError,
    FileBusyError,
    FileNotFoundInRepositoryError,
)

if TYPE_CHECKING:
    from docrag.interfaces.chunk_store import IChunkStore
    from docrag.interfaces.object_storage import IObjectStorage
    from docrag.models.chunks import ExtractionResult, TextChunk
    from docrag.pipeline.background import BackgroundAnalysisRunner
    from docrag.pipeline.status_tracker import FileStatusTracker
    from docrag.services.ingestion.chunker import TextChunker
    from docrag.services.ingestion.embedder import BatchEmbedder
    from docrag.services.ingestion.enricher import ChunkEnricher
    from docrag.services.ingestion.extractors.router import DocumentExtractor

logger = structlog.get_logger(logger_name=__name__)

ProgressCallback = Callable[[str, float], Any]

NO_TEXT_ERROR = "Document produced no extractable text"

_EMBED_START = 0.5
_EMBED_END = 0.8


class IngestionPipeline:
    """Orchestrates the ingestion stages for one file at a time.

    All collaborators are injected; see :func:`docrag.main.build_pipeline`
    for the production wiring.

    Parameters
    ----------
    storage:
        Source of the raw file bytes.
    extractor:
        Format router producing text segments.
    chunker:
        Splits segments into token-bounded chunks.
    enricher:
        Adds table sentences and article numbers.
    embedder:
        Batched embedding calls.
    chunk_store:
        Destination of the embedded chunks.
    status_tracker:
        Guarded status writes for the file record.
    background:
        Optional runner for post-processing document summaries.
    cost_per_million_tokens:
        Embedding price used by :meth:`estimate`.
    """

    def __init__(
        self,
        storage: IObjectStorage,
        extractor: DocumentExtractor,
        chunker: TextChunker,
        enricher: ChunkEnricher,
        embedder: BatchEmbedder,
        chunk_store: IChunkStore,
        status_tracker: FileStatusTracker,
        background: BackgroundAnalysisRunner | None = None,
        cost_per_million_tokens: float = 0.02,
    ) -> None:
        self._storage = storage
        self._extractor = extractor
        self._chunker = chunker
        self._enricher = enricher
        self._embedder = embedder
        self._chunk_store = chunk_store
        self._status = status_tracker
        self._background = background
        self._cost_per_million_tokens = cost_per_million_tokens

    @property
    def status_tracker(self) -> FileStatusTracker:
        return self._status

    @property
    def background(self) -> BackgroundAnalysisRunner | None:
        return self._background

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process_file(
        self,
        request: ProcessFileRequest,
        on_progress: ProgressCallback | None = None,
    ) -> ProcessingResult:
        """Run the full pipeline for one file.

        Returns
        -------
        ProcessingResult
            ``success=True`` with chunk/token counts and warnings, or
            ``success=False`` with the error message.  A file that is
            already being processed yields a failure result and its status
            is left untouched.
        """
        with structlog.contextvars.bound_contextvars(
            file_id=request.file_id, project_id=request.project_id
        ):
            return await self._process_file(request, on_progress)

    async def estimate(self, request: ProcessFileRequest) -> ProcessingEstimate:
        """Extract and chunk *request* without embedding or storing anything.

        Raises
        ------
        DocragError
            If the file cannot be fetched or extracted.
        """
        extraction = await self._extract(request)
        chunks = self._chunker.chunk(extraction.segments)
        tokens = sum(c.token_count for c in chunks)
        cost = tokens / 1_000_000 * self._cost_per_million_tokens
        logger.info(
            "file_estimate",
            file_id=request.file_id,
            chunks=len(chunks),
            tokens=tokens,
            cost_usd=round(cost, 6),
        )
        return ProcessingEstimate(
            file_id=request.file_id,
            estimated_chunks=len(chunks),
            estimated_tokens=tokens,
            estimated_cost_usd=cost,
            warnings=extraction.warnings,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _process_file(
        self,
        request: ProcessFileRequest,
        on_progress: ProgressCallback | None,
    ) -> ProcessingResult:
        started = time.monotonic()
        file_id = request.file_id
        log = logger.bind(filename=request.filename)

        try:
            await self._status.begin(file_id)
        except (FileBusyError, FileNotFoundInRepositoryError) as exc:
            log.warning("file_processing_rejected", error=str(exc))
            return ProcessingResult(
                success=False,
                file_id=file_id,
                error=str(exc),
                elapsed_s=time.monotonic() - started,
            )

        log.info("file_processing_start")
        warnings: list[str] = []
        inserted = False

        try:
            await invoke_callback(on_progress, "Processing document", 0.2)
            extraction = await self._extract(request)
            warnings.extend(extraction.warnings)

            chunks = self._chunker.chunk(extraction.segments)
            if not chunks:
                raise ExtractionError(message=NO_TEXT_ERROR)
            log.info("file_chunked", chunks=len(chunks), method=extraction.extraction_method)

            enriched = self._enricher.enrich_all(
                chunks, pre_enriched=extraction.pre_enriched, file_id=file_id
            )

            await invoke_callback(on_progress, "Generating embeddings", _EMBED_START)

            async def _embedding_progress(completed: int, total: int) -> None:
                fraction = _EMBED_START + (_EMBED_END - _EMBED_START) * completed / total
                await invoke_callback(on_progress, "Generating embeddings", fraction)

            vectors = await self._embedder.embed(
                [e.enriched_text for e in enriched], on_progress=_embedding_progress
            )

            await invoke_callback(on_progress, "Storing chunks", _EMBED_END)
            records = self._build_records(request, enriched, vectors)
            stored = await self._chunk_store.insert_chunks(records, replace_existing=True)
            inserted = True

            await self._status.complete(file_id, stored)
        except Exception as exc:
            message = str(exc) if isinstance(exc, DocragError) else f"{type(exc).__name__}: {exc}"
            log.error("file_processing_failed", error=message)
            if inserted:
                await self._discard_chunks(file_id)
            await self._record_failure(file_id, message)
            return ProcessingResult(
                success=False,
                file_id=file_id,
                warnings=warnings,
                error=message,
                elapsed_s=time.monotonic() - started,
            )

        await invoke_callback(on_progress, "Complete", 1.0)
        total_tokens = sum(c.token_count for c in chunks)
        elapsed = time.monotonic() - started
        log.info(
            "file_processing_complete",
            chunks=stored,
            tokens=total_tokens,
            warnings=len(warnings),
            elapsed_s=round(elapsed, 3),
        )

        if self._background is not None:
            self._background.schedule(file_id, request.filename)

        return ProcessingResult(
            success=True,
            file_id=file_id,
            chunk_count=stored,
            total_tokens=total_tokens,
            warnings=warnings,
            elapsed_s=elapsed,
        )

    async def _extract(self, request: ProcessFileRequest) -> ExtractionResult:
        await self._check_metadata(request)
        data = await self._storage.get_bytes(request.storage_path)
        return await self._extractor.extract(data, request.filename, request.mime_type)

    async def _check_metadata(self, request: ProcessFileRequest) -> None:
        """Log stored object metadata and flag a declared/stored MIME mismatch."""
        try:
            metadata = await self._storage.get_metadata(request.storage_path)
        except DocragError as exc:
            logger.debug("storage_metadata_unavailable", file_id=request.file_id, error=str(exc))
            return

        logger.debug(
            "storage_metadata",
            file_id=request.file_id,
            content_type=metadata.content_type,
            content_length=metadata.content_length,
        )
        stored = _base_mime(metadata.content_type)
        declared = _base_mime(request.mime_type)
        if stored and declared and stored != declared:
            logger.warning(
                "mime_type_mismatch",
                file_id=request.file_id,
                declared=declared,
                stored=stored,
            )

    def _build_records(
        self,
        request: ProcessFileRequest,
        enriched: list[EnrichedChunk],
        vectors: list[list[float]],
    ) -> list[ChunkRecord]:
        model = self._embedder.model_name
        records: list[ChunkRecord] = []
        for item, vector in zip(enriched, vectors, strict=True):
            chunk: TextChunk = item.chunk
            records.append(
                ChunkRecord(
                    chunk_id=str(uuid.uuid4()),
                    project_id=request.project_id,
                    file_id=request.file_id,
                    chunk_text=item.enriched_text,
                    chunk_index=chunk.index,
                    embedding=vector,
                    source_file=request.filename,
                    page_number=chunk.page_number,
                    section_title=chunk.section_title,
                    token_count=chunk.token_count,
                    metadata=ChunkMetadata(
                        original_text=item.original_text,
                        enrichment=item.enrichment,
                    ),
                    embedding_model=model,
                )
            )
        return records

    async def _discard_chunks(self, file_id: str) -> None:
        """Remove chunks stored by a run that failed afterwards."""
        try:
            deleted = await self._chunk_store.delete_chunks_for_file(file_id)
        except Exception as exc:
            logger.error("file_chunk_cleanup_failed", file_id=file_id, error=str(exc))
            return
        logger.warning("file_chunks_discarded", file_id=file_id, deleted_chunks=deleted)

    async def _record_failure(self, file_id: str, message: str) -> None:
        try:
            await self._status.fail(file_id, message)
        except Exception as exc:
            logger.error(
                "file_failure_status_write_failed",
                file_id=file_id,
                error=str(exc),
                original_error=message,
            )


def _base_mime(mime_type: str | None) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()

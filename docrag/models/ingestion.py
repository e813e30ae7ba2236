"""Request, result and statistics models for pipeline runs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProcessFileRequest(BaseModel):
    """Invocation contract for a single-file pipeline run."""

    model_config = ConfigDict(frozen=True)

    file_id: str
    storage_path: str
    filename: str
    mime_type: str = ""
    project_id: str


class ProcessingResult(BaseModel):
    """Outcome of one pipeline run.  Never raised, always returned."""

    model_config = ConfigDict(frozen=True)

    success: bool
    file_id: str
    chunk_count: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    elapsed_s: float = Field(default=0.0, ge=0.0)


class BatchResult(BaseModel):
    """Aggregate outcome of a sequential batch run."""

    model_config = ConfigDict(frozen=True)

    results: list[ProcessingResult] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0
    total: int = 0


class ProcessingStats(BaseModel):
    """Read-only per-project counts returned by the stats aggregator."""

    model_config = ConfigDict(frozen=True)

    total_files: int = 0
    processed_files: int = 0
    pending_files: int = 0
    processing_files: int = 0
    failed_files: int = 0
    total_chunks: int = 0
    total_tokens: int = 0


class ChunkingStats(BaseModel):
    """Token distribution over a list of chunks."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = 0
    total_tokens: int = 0
    avg_tokens: float = 0.0
    min_tokens: int = 0
    max_tokens: int = 0


class ProcessingEstimate(BaseModel):
    """Dry-run estimate of a pipeline run: extraction and chunking only."""

    model_config = ConfigDict(frozen=True)

    file_id: str
    estimated_chunks: int = 0
    estimated_tokens: int = 0
    estimated_cost_usd: float = 0.0
    warnings: list[str] = Field(default_factory=list)

"""File-record models for the ingestion state machine.

A :class:`FileRecord` is one uploaded project file as seen by the ingestion
pipeline.  Its ``embedding_status`` moves through a small state machine
owned by :class:`~docrag.pipeline.status_tracker.FileStatusTracker`:

    pending -> processing -> completed | failed
    completed | failed -> processing   (re-submission)
    processing -> pending              (operator reset of a stuck file)

All models are frozen; repositories return fresh instances after each write.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingStatus(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Lifecycle state of a file's embedding run."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed status edges.  Anything else is rejected by the tracker.
ALLOWED_TRANSITIONS: dict[EmbeddingStatus, frozenset[EmbeddingStatus]] = {
    EmbeddingStatus.PENDING: frozenset({EmbeddingStatus.PROCESSING}),
    EmbeddingStatus.PROCESSING: frozenset(
        {EmbeddingStatus.COMPLETED, EmbeddingStatus.FAILED, EmbeddingStatus.PENDING}
    ),
    EmbeddingStatus.COMPLETED: frozenset({EmbeddingStatus.PROCESSING}),
    EmbeddingStatus.FAILED: frozenset({EmbeddingStatus.PROCESSING}),
}


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class DocumentSummary(BaseModel):
    """LLM-generated document-level analysis stored on the file record."""

    model_config = ConfigDict(frozen=True)

    summary: str = Field(default="", description="Two or three sentence summary of the document.")
    topics: list[str] = Field(default_factory=list, description="Main topics covered.")
    document_type: str = Field(default="other", description="Kind of document (specification, report, ...).")
    key_concepts: list[str] = Field(default_factory=list, description="Important terms or concepts.")
    language: str = Field(default="unknown", description="Primary language code, e.g. 'nl' or 'en'.")
    generated_at: datetime = Field(default_factory=_utcnow)
    fallback: bool = Field(
        default=False,
        description="True when the LLM response was unusable and defaults were stored.",
    )


class FileRecord(BaseModel):
    """A project file known to the ingestion pipeline."""

    model_config = ConfigDict(frozen=True)

    file_id: str = Field(description="Unique identifier of the file.")
    project_id: str = Field(description="Project the file belongs to.")
    storage_path: str = Field(description="Key of the raw bytes in object storage.")
    filename: str = Field(description="Original filename, used for extension fallback routing.")
    mime_type: str = Field(default="", description="Declared MIME type of the upload.")
    embedding_status: EmbeddingStatus = Field(default=EmbeddingStatus.PENDING)
    chunk_count: int = Field(default=0, ge=0, description="Stored chunks; 0 unless completed.")
    embedded_at: datetime | None = Field(default=None, description="Set only when completed.")
    last_error: str | None = Field(default=None, description="Set only when failed.")
    document_metadata: DocumentSummary | None = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

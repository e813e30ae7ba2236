"""Text segment, chunk and enrichment models.

Data flows through these models stage by stage:

    ExtractionResult.segments (TextSegment)
        -> TextChunker         -> TextChunk
        -> ChunkEnricher       -> EnrichedChunk
        -> IngestionPipeline   -> ChunkRecord (persisted, with embedding)

Enrichment metadata is a tagged union discriminated on ``kind`` so that the
shape of the stored metadata is known per variant instead of being an open
key/value map.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enrichment variants
# ---------------------------------------------------------------------------
class PlainChunk(BaseModel):
    """A chunk with no detected table structure."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["plain"] = "plain"
    article_numbers: list[str] = Field(default_factory=list)
    # Set when enrichment of this chunk raised and the original text was kept.
    fallback_reason: str | None = None

    @property
    def has_table(self) -> bool:
        return False


class TableEnrichment(BaseModel):
    """A chunk containing a named table, described by synthetic sentences."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["table"] = "table"
    table_name: str = Field(description='Detected table label, e.g. "Table 4.162".')
    synthetic_sentences: list[str] = Field(default_factory=list)
    article_numbers: list[str] = Field(default_factory=list)

    @property
    def has_table(self) -> bool:
        return True


class XmlArticleEnrichment(BaseModel):
    """Structure taken directly from an XML article element."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["xml_article"] = "xml_article"
    article_number: str = Field(description='Article number, e.g. "4.162".')
    article_title: str = ""
    table_name: str | None = None
    synthetic_sentences: list[str] = Field(default_factory=list)
    article_references: list[str] = Field(default_factory=list)
    enriched_by_llm: bool = False

    @property
    def has_table(self) -> bool:
        return self.table_name is not None


ChunkEnrichment = Annotated[
    Union[PlainChunk, TableEnrichment, XmlArticleEnrichment],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Extraction output
# ---------------------------------------------------------------------------
class TextSegment(BaseModel):
    """A contiguous run of extracted text with its provenance."""

    model_config = ConfigDict(frozen=True)

    text: str
    page_number: int | None = Field(default=None, ge=1)
    section_title: str | None = None
    # Start a new chunk at this segment and carry no overlap into it.
    hard_break: bool = False
    enrichment: ChunkEnrichment | None = None


class ExtractionResult(BaseModel):
    """Output of :class:`~docrag.services.ingestion.extractors.DocumentExtractor`."""

    model_config = ConfigDict(frozen=True)

    segments: list[TextSegment] = Field(default_factory=list)
    total_tokens: int = Field(default=0, ge=0)
    warnings: list[str] = Field(default_factory=list)
    page_count: int | None = None
    extraction_method: str = Field(description='Extractor used, e.g. "pdf" or "xml".')
    # True when the format self-describes its structure (XML articles); the
    # enricher passes such chunks through untouched.
    pre_enriched: bool = False


# ---------------------------------------------------------------------------
# Chunks
# ---------------------------------------------------------------------------
class TextChunk(BaseModel):
    """A token-bounded window of document text."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="0-based position within the file.")
    text: str
    token_count: int = Field(ge=0)
    page_number: int | None = None
    section_title: str | None = None
    enrichment: ChunkEnrichment | None = None


class EnrichedChunk(BaseModel):
    """A chunk plus the text that will actually be embedded."""

    model_config = ConfigDict(frozen=True)

    chunk: TextChunk
    enriched_text: str
    original_text: str
    enrichment: ChunkEnrichment


class ChunkMetadata(BaseModel):
    """Metadata persisted alongside each chunk row."""

    model_config = ConfigDict(frozen=True)

    original_text: str
    enrichment: ChunkEnrichment


class ChunkRecord(BaseModel):
    """A persisted, embedded chunk."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description="Fresh UUID generated for every write.")
    project_id: str
    file_id: str
    chunk_text: str = Field(description="Enriched text (what was embedded).")
    chunk_index: int = Field(ge=0)
    embedding: list[float]
    source_file: str
    page_number: int | None = None
    section_title: str | None = None
    token_count: int = Field(ge=0)
    metadata: ChunkMetadata
    embedding_model: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))

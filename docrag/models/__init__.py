from docrag.models.chunks import (
    ChunkEnrichment,
    ChunkMetadata,
    ChunkRecord,
    EnrichedChunk,
    ExtractionResult,
    PlainChunk,
    TableEnrichment,
    TextChunk,
    TextSegment,
    XmlArticleEnrichment,
)
from docrag.models.files import (
    ALLOWED_TRANSITIONS,
    DocumentSummary,
    EmbeddingStatus,
    FileRecord,
)
from docrag.models.ingestion import (
    BatchResult,
    ChunkingStats,
    ProcessFileRequest,
    ProcessingEstimate,
    ProcessingResult,
    ProcessingStats,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "BatchResult",
    "ChunkEnrichment",
    "ChunkMetadata",
    "ChunkRecord",
    "ChunkingStats",
    "DocumentSummary",
    "EmbeddingStatus",
    "EnrichedChunk",
    "ExtractionResult",
    "FileRecord",
    "PlainChunk",
    "ProcessFileRequest",
    "ProcessingEstimate",
    "ProcessingResult",
    "ProcessingStats",
    "TableEnrichment",
    "TextChunk",
    "TextSegment",
    "XmlArticleEnrichment",
]

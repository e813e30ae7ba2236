"""Ingestion stages: extract -> chunk -> enrich -> embed.

Each stage is a plain class with injected collaborators; the pipeline
orchestrator in :mod:`docrag.pipeline.orchestrator` wires them together and
owns error handling and file status.
"""

from docrag.services.ingestion.chunker import TextChunker, chunking_stats
from docrag.services.ingestion.embedder import BatchEmbedder
from docrag.services.ingestion.enricher import ChunkEnricher
from docrag.services.ingestion.extractors import DocumentExtractor
from docrag.services.ingestion.summarizer import DocumentSummarizer
from docrag.services.ingestion.table_describer import TableDescriber
from docrag.services.ingestion.token_counter import (
    HeuristicTokenCounter,
    HuggingFaceTokenCounter,
    TokenCounter,
    build_token_counter,
)

__all__ = [
    "BatchEmbedder",
    "ChunkEnricher",
    "DocumentExtractor",
    "DocumentSummarizer",
    "HeuristicTokenCounter",
    "HuggingFaceTokenCounter",
    "TableDescriber",
    "TextChunker",
    "TokenCounter",
    "build_token_counter",
    "chunking_stats",
]

"""Utility modules for docrag.

- **errors** -- Domain-specific exception hierarchy rooted at DocragError;
  each pipeline stage raises its own subclass so the orchestrator can turn
  failures into persisted status without broad guessing.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **callbacks** -- invoke optional sync-or-async progress callbacks without
  letting a broken listener break a pipeline run.
"""

from docrag.utils.callbacks import invoke_callback
from docrag.utils.errors import (
    ChunkStoreError,
    ConfigurationError,
    DocragError,
    EmbeddingError,
    EnrichmentError,
    ExtractionError,
    FileBusyError,
    FileNotFoundInRepositoryError,
    InvalidTransitionError,
    LLMError,
    PipelineError,
    ProviderUnavailableError,
    RAGError,
    RateLimitError,
    StorageError,
    UnsupportedFormatError,
)
from docrag.utils.logging import configure_logging, get_logger

__all__ = [
    "ChunkStoreError",
    "ConfigurationError",
    "DocragError",
    "EmbeddingError",
    "EnrichmentError",
    "ExtractionError",
    "FileBusyError",
    "FileNotFoundInRepositoryError",
    "InvalidTransitionError",
    "LLMError",
    "PipelineError",
    "ProviderUnavailableError",
    "RAGError",
    "RateLimitError",
    "StorageError",
    "UnsupportedFormatError",
    "configure_logging",
    "get_logger",
    "invoke_callback",
]

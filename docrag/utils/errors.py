"""Custom exception hierarchy for docrag.

All application exceptions inherit from :class:`DocragError`, which carries
an optional ``provider_name`` so error handlers can identify which external
service (e.g. "openai", "sqlite", "pymupdf") caused the failure.

The hierarchy is organized by pipeline stage:

    DocragError  (base -- catch-all for any docrag error)
    +-- ExtractionError          (stage 1: bytes -> text segments)
    |   +-- UnsupportedFormatError
    +-- ChunkingError            (stage 2: segments -> chunks)
    +-- EnrichmentError          (stage 3: per-chunk, never fatal)
    +-- RAGError                 (embedding or chunk-store failure)
    |   +-- EmbeddingError
    |   +-- ChunkStoreError
    +-- StorageError             (object storage fetch/write)
    +-- LLMError                 (any LLM API call failure)
    +-- RateLimitError           (provider rate-limit exceeded)
    +-- ProviderUnavailableError (external service down / timed out)
    +-- PipelineError            (orchestration / state transitions)
    |   +-- FileBusyError
    |   +-- InvalidTransitionError
    +-- FileNotFoundInRepositoryError
    +-- ConfigurationError       (startup / missing config)

The orchestrator catches everything below :class:`DocragError` at the file
boundary and persists it as a ``failed`` status, so callers never see these
raised out of a pipeline run.
"""


class DocragError(Exception):
    """Base exception for all docrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets, e.g.
    ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Stage errors
# ---------------------------------------------------------------------------

class ExtractionError(DocragError):
    """Raised when a document cannot be read (corrupt, encrypted, malformed)."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFormatError(ExtractionError):
    """Raised when no extractor handles the declared MIME type / extension."""

    def __init__(
        self,
        message: str = "Unsupported file type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ChunkingError(DocragError):
    """Raised when extracted segments cannot be split into chunks."""

    def __init__(
        self,
        message: str = "Chunking failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EnrichmentError(DocragError):
    """Raised by enrichment heuristics; always caught per chunk."""

    def __init__(
        self,
        message: str = "Chunk enrichment failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# RAG / storage errors
# ---------------------------------------------------------------------------

class RAGError(DocragError):
    """Raised when a RAG write-path operation fails (embedding or chunk store)."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(RAGError):
    """Raised when a batch cannot be embedded (fatal for the file)."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ChunkStoreError(RAGError):
    """Raised when chunk rows cannot be written or deleted."""

    def __init__(
        self,
        message: str = "Chunk store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(DocragError):
    """Raised when raw file bytes cannot be fetched from or written to storage."""

    def __init__(
        self,
        message: str = "Object storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(DocragError):
    """Raised when an external service is unreachable or times out.

    The embedder retries this a bounded number of times before giving up.
    """

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(DocragError):
    """Raised when an API rate limit is exceeded.

    Callers should back off and retry, up to their configured limit.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(DocragError):
    """Raised when an LLM API call fails or returns an unparseable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(DocragError):
    """Raised when pipeline orchestration fails (invalid state transition, etc.)."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FileBusyError(PipelineError):
    """Raised when a file is already ``processing`` and another run is requested."""

    def __init__(
        self,
        message: str = "File is already being processed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidTransitionError(PipelineError):
    """Raised when a status change is not allowed by the file state machine."""

    def __init__(
        self,
        message: str = "Invalid embedding status transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FileNotFoundInRepositoryError(DocragError):
    """Raised when a file id has no record in the file repository."""

    def __init__(
        self,
        message: str = "File record not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(DocragError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

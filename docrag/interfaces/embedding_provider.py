"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The
pipeline never talks to an embedding API directly; it goes through
:class:`~docrag.services.ingestion.embedder.BatchEmbedder`, which batches,
paces and retries calls to an implementation of this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider -- OpenAI or any OpenAI-compatible endpoint
# Located in: docrag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for one batch of texts.

        Parameters
        ----------
        texts:
            Text strings to embed.  Callers keep batches within the
            provider's per-call limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        docrag.utils.errors.RateLimitError
            If the provider rejected the call for rate-limit reasons.
        docrag.utils.errors.ProviderUnavailableError
            If the provider could not be reached.
        docrag.utils.errors.EmbeddingError
            For any other failure.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``).
        """

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the model identifier stored with every chunk row."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""

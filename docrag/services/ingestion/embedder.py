"""Batched, paced and retried calls to an embedding provider.

The external embedding service is rate limited and occasionally slow, so
texts are sent in fixed-size batches with a short pause between them.
Every call is bounded by a timeout.  Rate-limit and availability errors are
retried with exponential backoff; anything else, including a timeout, is
fatal for the file.  Vectors are reassembled in input order and checked
for count and dimensionality before they are returned.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog

from docrag.utils.callbacks import invoke_callback
from docrag.utils.errors import (
    DocragError,
    EmbeddingError,
    ProviderUnavailableError,
    RateLimitError,
)

if TYPE_CHECKING:
    from docrag.interfaces.embedding_provider import IEmbeddingProvider

logger = structlog.get_logger(logger_name=__name__)


class BatchEmbedder:
    """Embeds a list of texts through an :class:`IEmbeddingProvider`.

    Parameters
    ----------
    provider:
        The embedding backend.
    batch_size:
        Maximum texts per provider call (default 100).
    timeout_s:
        Upper bound for a single provider call.
    max_retries:
        Retries per batch for rate-limit/unavailable errors.
    retry_base_delay_s:
        First backoff delay; doubles with every retry.
    batch_pause_s:
        Pause between consecutive batches.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_size: int = 100,
        timeout_s: float = 30.0,
        max_retries: int = 3,
        retry_base_delay_s: float = 1.0,
        batch_pause_s: float = 0.1,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._provider = provider
        self._batch_size = batch_size
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._retry_base_delay_s = retry_base_delay_s
        self._batch_pause_s = batch_pause_s

    @property
    def model_name(self) -> str:
        return self._provider.get_model_name()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(
        self,
        texts: list[str],
        on_progress: Callable[[int, int], Any] | None = None,
    ) -> list[list[float]]:
        """Embed *texts* and return vectors positionally aligned with them.

        Parameters
        ----------
        texts:
            Texts to embed.  An empty list returns ``[]`` without calling
            the provider.
        on_progress:
            Optional sync or async ``(completed, total)`` callable invoked
            after each batch.

        Raises
        ------
        EmbeddingError
            If a batch fails permanently, times out, or returns vectors of
            the wrong count or dimension.
        """
        if not texts:
            return []

        total = len(texts)
        vectors: list[list[float]] = []
        dimension: int | None = None
        batch_count = (total + self._batch_size - 1) // self._batch_size

        for batch_number, start in enumerate(range(0, total, self._batch_size)):
            if batch_number > 0 and self._batch_pause_s > 0:
                await asyncio.sleep(self._batch_pause_s)

            batch = texts[start : start + self._batch_size]
            batch_vectors = await self._embed_batch(batch, batch_number)

            if len(batch_vectors) != len(batch):
                raise EmbeddingError(
                    message=(
                        f"Provider returned {len(batch_vectors)} vectors "
                        f"for a batch of {len(batch)} texts"
                    ),
                    provider_name=self._provider.get_provider_name(),
                )
            for vector in batch_vectors:
                if dimension is None:
                    dimension = len(vector)
                if not vector or len(vector) != dimension:
                    raise EmbeddingError(
                        message=(
                            f"Inconsistent embedding dimension: expected {dimension}, "
                            f"got {len(vector)}"
                        ),
                        provider_name=self._provider.get_provider_name(),
                    )

            vectors.extend(batch_vectors)
            await invoke_callback(on_progress, len(vectors), total)

        logger.info(
            "embedding_complete",
            provider=self._provider.get_provider_name(),
            texts=total,
            batches=batch_count,
            dimension=dimension,
        )
        return vectors

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _embed_batch(self, batch: list[str], batch_number: int) -> list[list[float]]:
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(
                    self._provider.embed(batch),
                    timeout=self._timeout_s,
                )
            except asyncio.TimeoutError as exc:
                raise EmbeddingError(
                    message=f"Embedding batch {batch_number} timed out after {self._timeout_s}s",
                    provider_name=self._provider.get_provider_name(),
                ) from exc
            except (RateLimitError, ProviderUnavailableError) as exc:
                attempt += 1
                if attempt > self._max_retries:
                    raise EmbeddingError(
                        message=(
                            f"Embedding batch {batch_number} failed after "
                            f"{self._max_retries} retries: {exc}"
                        ),
                        provider_name=self._provider.get_provider_name(),
                    ) from exc
                delay = self._retry_base_delay_s * (2 ** (attempt - 1))
                logger.warning(
                    "embedding_batch_retry",
                    batch=batch_number,
                    attempt=attempt,
                    delay_s=delay,
                    error=str(exc),
                )
                await asyncio.sleep(delay)
            except EmbeddingError:
                raise
            except DocragError as exc:
                raise EmbeddingError(
                    message=f"Embedding batch {batch_number} failed: {exc}",
                    provider_name=self._provider.get_provider_name(),
                ) from exc

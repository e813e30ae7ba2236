"""Unit tests for BatchEmbedder -- batching, progress, retries, timeouts, validation."""

from __future__ import annotations

import asyncio

import pytest

from docrag.services.ingestion.embedder import BatchEmbedder
from docrag.utils.errors import (
    EmbeddingError,
    ProviderUnavailableError,
    RateLimitError,
    StorageError,
)
from tests.conftest import FakeEmbeddingProvider, _hash_to_vector


class FlakyProvider(FakeEmbeddingProvider):
    """Raises the queued errors first, then embeds normally."""

    def __init__(self, errors: list[Exception]) -> None:
        super().__init__()
        self.errors = list(errors)
        self.attempts = 0

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return await super().embed(texts)


class SlowProvider(FakeEmbeddingProvider):
    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        await asyncio.sleep(5)
        return []


class BrokenShapeProvider(FakeEmbeddingProvider):
    def __init__(self, vectors: list[list[float]]) -> None:
        super().__init__()
        self.vectors = vectors

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return self.vectors


def _embedder(provider, **overrides) -> BatchEmbedder:
    options = {"batch_size": 4, "retry_base_delay_s": 0, "batch_pause_s": 0}
    options.update(overrides)
    return BatchEmbedder(provider, **options)


class TestBatching:
    async def test_empty_input_does_not_call_provider(self) -> None:
        provider = FakeEmbeddingProvider()

        assert await _embedder(provider).embed([]) == []
        assert provider.calls == []

    async def test_batches_are_reassembled_in_order(self) -> None:
        provider = FakeEmbeddingProvider()
        texts = [f"text {i}" for i in range(10)]

        vectors = await _embedder(provider).embed(texts)

        assert [len(call) for call in provider.calls] == [4, 4, 2]
        assert vectors == [_hash_to_vector(t) for t in texts]

    async def test_progress_reported_after_each_batch(self) -> None:
        progress: list[tuple[int, int]] = []

        await _embedder(FakeEmbeddingProvider()).embed(
            [f"t{i}" for i in range(10)],
            on_progress=lambda done, total: progress.append((done, total)),
        )

        assert progress == [(4, 10), (8, 10), (10, 10)]

    async def test_async_progress_callback(self) -> None:
        progress: list[int] = []

        async def on_progress(done: int, total: int) -> None:
            progress.append(done)

        await _embedder(FakeEmbeddingProvider()).embed(["a", "b"], on_progress=on_progress)

        assert progress == [2]

    async def test_failing_progress_callback_does_not_abort(self) -> None:
        def on_progress(done: int, total: int) -> None:
            raise RuntimeError("ui went away")

        vectors = await _embedder(FakeEmbeddingProvider()).embed(["a"], on_progress=on_progress)

        assert len(vectors) == 1

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            BatchEmbedder(FakeEmbeddingProvider(), batch_size=0)


class TestRetries:
    async def test_rate_limit_is_retried(self) -> None:
        provider = FlakyProvider([RateLimitError(), ProviderUnavailableError()])

        vectors = await _embedder(provider, max_retries=3).embed(["a", "b"])

        assert provider.attempts == 3
        assert len(vectors) == 2

    async def test_retries_exhausted_raise_embedding_error(self) -> None:
        provider = FlakyProvider([RateLimitError()] * 5)

        with pytest.raises(EmbeddingError, match="after 2 retries"):
            await _embedder(provider, max_retries=2).embed(["a"])
        assert provider.attempts == 3

    async def test_other_errors_are_not_retried(self) -> None:
        provider = FlakyProvider([StorageError(message="weird")])

        with pytest.raises(EmbeddingError):
            await _embedder(provider).embed(["a"])
        assert provider.attempts == 1

    async def test_timeout_is_fatal(self) -> None:
        provider = SlowProvider()

        with pytest.raises(EmbeddingError, match="timed out"):
            await _embedder(provider, timeout_s=0.01).embed(["a"])
        assert len(provider.calls) == 1


class TestValidation:
    async def test_wrong_vector_count(self) -> None:
        provider = BrokenShapeProvider([[0.1, 0.2]])

        with pytest.raises(EmbeddingError, match="1 vectors for a batch of 2"):
            await _embedder(provider).embed(["a", "b"])

    async def test_inconsistent_dimensions(self) -> None:
        provider = BrokenShapeProvider([[0.1, 0.2], [0.1]])

        with pytest.raises(EmbeddingError, match="dimension"):
            await _embedder(provider).embed(["a", "b"])

    async def test_empty_vector(self) -> None:
        provider = BrokenShapeProvider([[]])

        with pytest.raises(EmbeddingError):
            await _embedder(provider).embed(["a"])

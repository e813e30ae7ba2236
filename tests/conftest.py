"""Shared pytest fixtures for the docrag test suite."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path
from typing import Any

import pytest

from docrag.interfaces.chunk_store import IChunkStore
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.interfaces.llm_provider import ILLMProvider
from docrag.interfaces.object_storage import IObjectStorage, ObjectMetadata
from docrag.models.chunks import ChunkRecord
from docrag.models.files import FileRecord
from docrag.models.ingestion import ProcessFileRequest
from docrag.pipeline.background import BackgroundAnalysisRunner
from docrag.pipeline.orchestrator import IngestionPipeline
from docrag.pipeline.status_tracker import FileStatusTracker
from docrag.providers.database.sqlite_chunk_store import SQLiteChunkStore
from docrag.providers.database.sqlite_file_repository import SQLiteFileRepository
from docrag.services.ingestion.chunker import TextChunker
from docrag.services.ingestion.embedder import BatchEmbedder
from docrag.services.ingestion.enricher import ChunkEnricher
from docrag.services.ingestion.extractors.router import DocumentExtractor
from docrag.utils.errors import ChunkStoreError, StorageError

_EMBEDDING_DIM = 16


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Deterministic pseudo-embedding: same text always yields the same vector."""
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    values = struct.unpack(f"<{dim}I", raw[: dim * 4])
    return [v / 0xFFFFFFFF for v in values]


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Hash-based embedding provider that records every call."""

    def __init__(self, dim: int = _EMBEDDING_DIM) -> None:
        self.dim = dim
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t, self.dim) for t in texts]

    def get_dimension(self) -> int:
        return self.dim

    def get_model_name(self) -> str:
        return "fake-hash-embedding"

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True


class FakeLLMProvider(ILLMProvider):
    """Returns canned responses in order; raises queued exceptions."""

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses = list(responses or [])
        self.prompts: list[str] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        self.prompts.append(user_prompt)
        response = self.responses.pop(0) if self.responses else ""
        if isinstance(response, Exception):
            raise response
        return response

    def get_provider_name(self) -> str:
        return "fake_llm"

    def is_available(self) -> bool:
        return True


class InMemoryStorage(IObjectStorage):
    """Dict-backed object storage."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str | None]] = {}

    async def get_bytes(self, storage_path: str) -> bytes:
        if storage_path not in self.objects:
            raise StorageError(message=f"Object not found: {storage_path}", provider_name="memory")
        return self.objects[storage_path][0]

    async def get_metadata(self, storage_path: str) -> ObjectMetadata:
        if storage_path not in self.objects:
            raise StorageError(message=f"Object not found: {storage_path}", provider_name="memory")
        data, content_type = self.objects[storage_path]
        return ObjectMetadata(content_type=content_type, content_length=len(data))

    async def put_bytes(
        self,
        storage_path: str,
        data: bytes,
        content_type: str | None = None,
    ) -> None:
        self.objects[storage_path] = (data, content_type)

    def get_provider_name(self) -> str:
        return "memory"


class FailingChunkStore(SQLiteChunkStore):
    """SQLite chunk store whose inserts always fail."""

    async def insert_chunks(
        self,
        chunks: list[ChunkRecord],
        replace_existing: bool = False,
    ) -> int:
        raise ChunkStoreError(message="simulated store outage", provider_name="sqlite")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "docrag.db"


@pytest.fixture
async def repository(db_path: Path) -> SQLiteFileRepository:
    repo = SQLiteFileRepository(db_path=db_path)
    await repo.initialize()
    return repo


@pytest.fixture
async def chunk_store(db_path: Path) -> SQLiteChunkStore:
    store = SQLiteChunkStore(db_path=db_path)
    await store.initialize()
    return store


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


def make_pipeline(
    storage: IObjectStorage,
    repository: SQLiteFileRepository,
    chunk_store: IChunkStore,
    embedding_provider: IEmbeddingProvider,
    chunk_size: int = 512,
    overlap: int = 100,
    enricher: ChunkEnricher | None = None,
    background: BackgroundAnalysisRunner | None = None,
) -> IngestionPipeline:
    """Build a pipeline with no pauses between embedding batches."""
    return IngestionPipeline(
        storage=storage,
        extractor=DocumentExtractor(),
        chunker=TextChunker(chunk_size=chunk_size, overlap=overlap),
        enricher=enricher or ChunkEnricher(),
        embedder=BatchEmbedder(
            provider=embedding_provider,
            batch_size=4,
            retry_base_delay_s=0,
            batch_pause_s=0,
        ),
        chunk_store=chunk_store,
        status_tracker=FileStatusTracker(repository),
        background=background,
    )


@pytest.fixture
def pipeline(
    storage: InMemoryStorage,
    repository: SQLiteFileRepository,
    chunk_store: SQLiteChunkStore,
    embedding_provider: FakeEmbeddingProvider,
) -> IngestionPipeline:
    return make_pipeline(storage, repository, chunk_store, embedding_provider)


async def register_file(
    storage: InMemoryStorage,
    repository: SQLiteFileRepository,
    file_id: str,
    filename: str,
    data: bytes,
    mime_type: str = "",
    project_id: str = "proj-1",
) -> ProcessFileRequest:
    """Store *data* and add a pending file record; return the matching request."""
    storage_path = f"{project_id}/{file_id}/{filename}"
    await storage.put_bytes(storage_path, data, mime_type or None)
    await repository.add_file(
        FileRecord(
            file_id=file_id,
            project_id=project_id,
            storage_path=storage_path,
            filename=filename,
            mime_type=mime_type,
        )
    )
    return ProcessFileRequest(
        file_id=file_id,
        storage_path=storage_path,
        filename=filename,
        mime_type=mime_type,
        project_id=project_id,
    )


def paged_text(pages: int = 3, paragraphs_per_page: int = 8, words: int = 64) -> str:
    """Form-feed separated pages of paragraphs made of single-token words."""
    page_texts = []
    for p in range(pages):
        paragraphs = [
            " ".join(f"p{p}q{i}w{j}" for j in range(words))
            for i in range(paragraphs_per_page)
        ]
        page_texts.append("\n\n".join(paragraphs))
    return "\f".join(page_texts)

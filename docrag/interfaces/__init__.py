"""Abstract interfaces for every external collaborator of the pipeline.

Concrete adapters live under ``docrag.providers``; the composition root
``docrag.main.build_pipeline`` picks them based on settings.
"""

from docrag.interfaces.chunk_store import IChunkStore
from docrag.interfaces.embedding_provider import IEmbeddingProvider
from docrag.interfaces.file_repository import IFileRepository
from docrag.interfaces.llm_provider import ILLMProvider
from docrag.interfaces.object_storage import IObjectStorage, ObjectMetadata

__all__ = [
    "IChunkStore",
    "IEmbeddingProvider",
    "IFileRepository",
    "ILLMProvider",
    "IObjectStorage",
    "ObjectMetadata",
]

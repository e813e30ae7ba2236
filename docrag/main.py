"""docrag composition root.

Wires providers, ingestion stages and pipeline services together from a
:class:`Settings` instance.  Nothing in the pipeline reaches for a module
level singleton; everything it uses is constructed here and injected.
"""

from __future__ import annotations

from typing import Any

import structlog

from docrag.config.settings import Settings
from docrag.interfaces.llm_provider import ILLMProvider
from docrag.interfaces.object_storage import IObjectStorage
from docrag.pipeline.background import BackgroundAnalysisRunner
from docrag.pipeline.batch_runner import BatchRunner
from docrag.pipeline.orchestrator import IngestionPipeline
from docrag.pipeline.reprocessor import Reprocessor
from docrag.pipeline.stats import StatsAggregator
from docrag.pipeline.status_tracker import FileStatusTracker
from docrag.providers.database.sqlite_chunk_store import SQLiteChunkStore
from docrag.providers.database.sqlite_file_repository import SQLiteFileRepository
from docrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from docrag.providers.llm.openai_provider import OpenAILLMProvider
from docrag.providers.storage.http_storage import HttpObjectStorage
from docrag.providers.storage.local_storage import LocalObjectStorage
from docrag.services.ingestion.chunker import TextChunker
from docrag.services.ingestion.embedder import BatchEmbedder
from docrag.services.ingestion.enricher import ChunkEnricher
from docrag.services.ingestion.extractors.router import DocumentExtractor
from docrag.services.ingestion.summarizer import DocumentSummarizer
from docrag.services.ingestion.table_describer import TableDescriber
from docrag.services.ingestion.token_counter import build_token_counter
from docrag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_storage(app_settings: Settings) -> IObjectStorage:
    """HTTP object storage when a base URL is configured, else the local root."""
    if app_settings.storage_base_url:
        return HttpObjectStorage(
            base_url=app_settings.storage_base_url,
            api_token=app_settings.storage_api_token,
        )
    return LocalObjectStorage(root=app_settings.storage_root)


def _build_llm_provider(app_settings: Settings) -> ILLMProvider | None:
    if not app_settings.llm_configured():
        return None
    return OpenAILLMProvider(settings=app_settings)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_stores(app_settings: Settings) -> dict[str, Any]:
    """Construct the persistence layer only (no API key needed)."""
    repository = SQLiteFileRepository(db_path=app_settings.database_path)
    chunk_store = SQLiteChunkStore(db_path=app_settings.database_path)
    return {
        "repository": repository,
        "chunk_store": chunk_store,
        "stats": StatsAggregator(repository=repository, chunk_store=chunk_store),
        "status_tracker": FileStatusTracker(repository=repository),
        "storage": _build_storage(app_settings),
    }


async def initialize_stores(components: dict[str, Any]) -> None:
    """Create database tables for the stores in *components*."""
    await components["repository"].initialize()
    await components["chunk_store"].initialize()


def build_pipeline(app_settings: Settings) -> dict[str, Any]:
    """Construct every pipeline service with injected dependencies.

    Returns
    -------
    dict
        Service instances keyed by role name: ``pipeline``, ``batch_runner``,
        ``reprocessor``, ``stats``, ``repository``, ``chunk_store``,
        ``storage``, ``status_tracker``, ``background`` and ``settings``.

    Raises
    ------
    ConfigurationError
        If no embedding API key is configured, or the configured tokenizer
        cannot be loaded.
    """
    if not app_settings.openai_api_key:
        raise ConfigurationError(
            message="OPENAI_API_KEY is required to embed documents",
        )

    components = build_stores(app_settings)
    repository = components["repository"]
    chunk_store = components["chunk_store"]

    token_counter = build_token_counter(app_settings.tokenizer_name)
    llm = _build_llm_provider(app_settings)

    describer = TableDescriber(llm=llm if app_settings.table_llm_enabled else None)
    extractor = DocumentExtractor(token_counter=token_counter, table_describer=describer)
    chunker = TextChunker(
        chunk_size=app_settings.chunk_size,
        overlap=app_settings.chunk_overlap,
        token_counter=token_counter,
    )
    embedder = BatchEmbedder(
        provider=OpenAIEmbeddingProvider(settings=app_settings),
        batch_size=app_settings.embedding_batch_size,
        timeout_s=app_settings.embedding_timeout_s,
        max_retries=app_settings.embedding_max_retries,
        retry_base_delay_s=app_settings.embedding_retry_base_delay_s,
        batch_pause_s=app_settings.embedding_batch_pause_s,
    )

    background = None
    if app_settings.summaries_enabled and llm is not None:
        background = BackgroundAnalysisRunner(
            summarizer=DocumentSummarizer(llm=llm),
            repository=repository,
            chunk_store=chunk_store,
        )

    pipeline = IngestionPipeline(
        storage=components["storage"],
        extractor=extractor,
        chunker=chunker,
        enricher=ChunkEnricher(),
        embedder=embedder,
        chunk_store=chunk_store,
        status_tracker=components["status_tracker"],
        background=background,
        cost_per_million_tokens=app_settings.embedding_cost_per_million_tokens,
    )

    logger.info(
        "pipeline_built",
        embedding_model=embedder.model_name,
        tokenizer=token_counter.name,
        table_llm=describer.uses_llm,
        summaries=background is not None,
    )

    components.update(
        {
            "pipeline": pipeline,
            "batch_runner": BatchRunner(
                pipeline=pipeline,
                repository=repository,
                file_pause_s=app_settings.batch_file_pause_s,
            ),
            "reprocessor": Reprocessor(
                pipeline=pipeline,
                repository=repository,
                chunk_store=chunk_store,
            ),
            "background": background,
            "settings": app_settings,
        }
    )
    return components

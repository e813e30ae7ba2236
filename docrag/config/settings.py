"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123`` (always win)
  2. A ``.env`` file in the working directory (local development)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
below apply when neither source sets a value.  An optional YAML file can
be layered underneath both via :func:`docrag.config.loader.load_config`.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docrag ingestion settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Persistence ===
    database_path: str = "data/docrag.db"
    storage_root: str = "data/files"
    # When set, raw files are fetched over HTTP from this base URL instead
    # of the local storage root.
    storage_base_url: str = ""
    # Bearer token sent to the HTTP object store.
    storage_api_token: str = ""

    # === OpenAI-compatible providers ===
    # Empty key = "not configured"; build_pipeline refuses to embed without it.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_embedding_model: str = "text-embedding-3-small"
    openai_text_model: str = "gpt-4o-mini"

    # === Chunking ===
    chunk_size: int = Field(default=512, gt=0)
    chunk_overlap: int = Field(default=100, ge=0)
    # Hugging Face tokenizer id (e.g. "bert-base-uncased"); empty uses the
    # built-in word/punctuation counter.
    tokenizer_name: str = ""

    # === Embedding ===
    embedding_batch_size: int = Field(default=100, gt=0)
    embedding_timeout_s: float = Field(default=30.0, gt=0)
    embedding_max_retries: int = Field(default=3, ge=0)
    embedding_retry_base_delay_s: float = Field(default=1.0, ge=0)
    embedding_batch_pause_s: float = Field(default=0.1, ge=0)
    # USD per 1M tokens, used only by IngestionPipeline.estimate().
    embedding_cost_per_million_tokens: float = 0.02

    # === Batch processing ===
    batch_file_pause_s: float = Field(default=0.5, ge=0)

    # === Optional LLM features ===
    table_llm_enabled: bool = False
    summaries_enabled: bool = False

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def llm_configured(self) -> bool:
        """Return True when an API key is available for LLM-backed features."""
        return bool(self.openai_api_key)

"""Application settings loaded from environment variables via pydantic-settings.

Values come from, in priority order: environment variables
(``OPENAI_API_KEY=...``), then a ``.env`` file in the working directory,
then the defaults below.  Field ``chunk_max_size`` maps to env var
``CHUNK_MAX_SIZE`` and so on.

Providers never read the environment themselves: :meth:`Settings.embedding_config`
and :meth:`Settings.completion_config` build the explicit
:class:`ProviderConfig` objects their constructors take.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderConfig(BaseModel):
    """Connection settings for one external model service."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", description="API key; empty means not configured.")
    model: str = Field(description="Model identifier sent with every request.")
    base_url: str = Field(
        default="",
        description="OpenAI-compatible endpoint override; empty uses the SDK default.",
    )
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds.")
    max_retries: int = Field(default=3, ge=0, description="Retries on retryable failures.")


class Settings(BaseSettings):
    """briefrag application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Model providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (Azure proxy, TogetherAI, ...)
    openai_embedding_model: str = "text-embedding-3-small"
    openai_chat_model: str = "gpt-4o-mini"
    embedding_dimension: int = 1536
    provider_timeout: float = 30.0
    provider_max_retries: int = 3

    # === Extraction ===
    extraction_max_pages: int = 50
    extraction_min_text_length: int = 10

    # === Chunking / embedding ===
    chunk_max_size: int = 2000
    chunk_overlap: int = 200
    embedding_token_ceiling: int = 7000
    embedding_concurrency: int = 4
    embedding_backoff_base: float = 0.5
    embedding_backoff_max: float = 8.0
    ingestion_concurrency: int = 2

    # === Retrieval / completion ===
    retrieval_max_results: int = 5
    retrieval_threshold: float = 0.3
    completion_temperature: float = 0.7
    completion_max_tokens: int = 1024

    # === Storage ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "document_chunks"
    documents_db_path: str = "data/documents.db"
    file_storage_dir: str = "data/uploads"
    file_storage_base_url: str = ""  # when set, raw files are fetched over HTTP
    file_storage_token: str = ""  # bearer token for the HTTP file store

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    config_path: str = "config/config.yaml"

    def embedding_config(self) -> ProviderConfig:
        """Build the embedding provider's connection settings."""
        return ProviderConfig(
            api_key=self.openai_api_key,
            model=self.openai_embedding_model,
            base_url=self.openai_base_url,
            timeout=self.provider_timeout,
            max_retries=self.provider_max_retries,
        )

    def completion_config(self) -> ProviderConfig:
        """Build the chat completion provider's connection settings."""
        return ProviderConfig(
            api_key=self.openai_api_key,
            model=self.openai_chat_model,
            base_url=self.openai_base_url,
            timeout=self.provider_timeout,
            max_retries=self.provider_max_retries,
        )

"""Application settings loaded from environment variables via pydantic-settings.

Settings are read from two sources (in priority order):

  1. **Environment variables** -- e.g. ``OPENAI_API_KEY=sk-abc123``
  2. **.env file** -- key=value lines in the project root ``.env`` file

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults are
used when neither an env var nor a ``.env`` entry exists.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """ingestflow worker settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, Azure proxy, ...)
    openai_embedding_model: str = "text-embedding-3-small"
    openai_transcription_model: str = "whisper-1"
    default_transcription_language: str = "en"

    # === Storage ===
    storage_backend: str = "local"  # "local" or "supabase"
    blob_root: str = "data/blobs"
    supabase_url: str = ""
    supabase_service_key: str = ""
    text_bucket: str = "transcripts"
    database_path: str = "data/ingestflow.db"

    # === Chunking / batching ===
    chunk_size_tokens: int = 500
    chunk_overlap_tokens: int = 50
    embedding_batch_size: int = 100
    insert_batch_size: int = 100

    # === Job runtime ===
    step_retries: int = 3
    retry_backoff_seconds: float = 1.0

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def is_embedding_configured(self) -> bool:
        """Return ``True`` when an API key for the embedding provider is set."""
        return bool(self.openai_api_key)

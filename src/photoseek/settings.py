"""Application settings and environment configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[2]
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Built once at startup and handed to the components that need it.
    Instances are frozen so a running service never observes a change.
    """

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Photoseek"
    environment: str = "dev"  # 'dev' or 'prod'
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Database
    database_url: str = "postgresql://localhost/photoseek"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800
    db_pool_pre_ping: bool = True
    db_connect_timeout: int = 10

    # Local image storage
    images_dir: str = "images"

    # Model service (LM Studio / OpenAI-compatible)
    lmstudio_base_url: str = "http://localhost:1234/v1"
    lmstudio_image_model: str = "qwen/qwen3-vl-4b"
    lmstudio_text_model: str = "llama2"
    lmstudio_embedding_model: str = "text-embedding-nomic-embed-text-v1.5"
    lmstudio_temperature: float = 0.2
    # Transport-level ceiling for a single model-service request.
    lmstudio_request_timeout_seconds: float = 60.0

    # Embeddings
    # Must match the vector(...) column created by the migrations.
    embedding_dimensions: int = 768

    # Cascade timeouts
    upload_embed_timeout_seconds: float = 5.0
    search_embed_timeout_seconds: float = 5.0
    search_fallback_timeout_seconds: float = 2.0

    # Vector search ranking
    # Adaptive window: keep matches within best distance + delta, never above cap.
    adaptive_distance_delta: float = 0.05
    adaptive_distance_cap: float = 0.60
    default_search_limit: int = 24
    max_search_limit: int = 200
    hnsw_ef_search: int = 80
    ivfflat_probes: int = 100

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "dev"

    def model_config_audit(self) -> dict:
        """Return startup model-config audit metadata for logging."""
        return {
            "lmstudio_base_url": self.lmstudio_base_url,
            "lmstudio_image_model": self.lmstudio_image_model,
            "lmstudio_text_model": self.lmstudio_text_model,
            "lmstudio_embedding_model": self.lmstudio_embedding_model,
            "embedding_dimensions": self.embedding_dimensions,
            "adaptive_distance_delta": self.adaptive_distance_delta,
            "adaptive_distance_cap": self.adaptive_distance_cap,
        }


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment once per process."""
    return Settings()

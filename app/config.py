"""Application configuration."""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_env: str = "development"
    database_url: str

    # Redis (for Celery)
    redis_url: str = "redis://localhost:6379/0"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = "app.log"

    # Hook delivery
    default_timeout_seconds: float = 30.0
    response_body_max_length: int = 65536
    execution_history_limit: int = 50

    # Retry backoff: base * 2 ** (attempt - 1), capped, plus jitter
    retry_backoff_base_seconds: float = 10.0
    retry_backoff_max_seconds: float = 3600.0
    retry_jitter_ratio: float = 0.1
    retry_sweep_interval_seconds: float = 60.0
    retry_sweep_batch_size: int = 100

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

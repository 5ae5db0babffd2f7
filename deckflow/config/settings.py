"""Application settings using Pydantic."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

MEGABYTE = 1024 * 1024


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DECKFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Intake policy
    batch_max_file_mb: int = 20
    batch_max_files: int = 15
    single_max_file_mb: int = 15

    # Conversion caps (single-document path)
    conversion_max_pages: int = 6
    conversion_max_dimension: int = 1200
    conversion_quality: float = 0.65

    # Transfer
    transfer_concurrency: int = 1

    # Local storage
    data_dir: Path = Path("data")

    # Generative analyzer (Ollama)
    analyzer_base_url: str = "http://localhost:11434"
    analyzer_model_name: str = "gemma3:12b"
    analyzer_temperature: float = 0.3
    analyzer_request_timeout: float = 90.0
    analyzer_num_ctx: int = 16384
    analyzer_max_attempts: int = 2
    analyzer_retry_wait_seconds: float = 1.0
    analysis_timeout_seconds: float = 300.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def batch_max_file_bytes(self) -> int:
        return self.batch_max_file_mb * MEGABYTE

    @property
    def single_max_file_bytes(self) -> int:
        return self.single_max_file_mb * MEGABYTE


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

from indication_mapper.constants import (
    CLASSIFICATION_MODEL,
    CLASSIFICATION_TEMPERATURE,
    CLASSIFICATION_TIMEOUT,
    DAILYMED_BASE_URL,
    DEFAULT_PREAMBLE_MARKERS,
    DEFAULT_TIMEOUT,
    INDICATIONS_SECTION_ID,
    RECORD_CACHE_TTL,
    SEARCH_CACHE_TTL,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///indication_mapper.db"

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    search_cache_ttl: int = SEARCH_CACHE_TTL
    record_cache_ttl: int = RECORD_CACHE_TTL

    # API Keys. No fallback: classification fails fast when this is empty.
    openai_api_key: str = ""

    # Classification Settings
    classification_model: str = CLASSIFICATION_MODEL
    classification_temperature: float = CLASSIFICATION_TEMPERATURE
    classification_timeout: float = CLASSIFICATION_TIMEOUT

    # DailyMed
    dailymed_base_url: str = DAILYMED_BASE_URL
    http_timeout: float = DEFAULT_TIMEOUT
    archive_labels: bool = True
    label_archive_dir: Path = Path("data/xml")

    # Label parsing
    indications_section_id: str = INDICATIONS_SECTION_ID
    preamble_markers: list[str] = list(DEFAULT_PREAMBLE_MARKERS)

    # App Settings
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        frozen = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

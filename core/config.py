"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


# ============================================================================
# Pipeline constants (fixed, not read from the environment)
# ============================================================================

BATCH_SIZE = 100
MIN_CONTRACT_VALUE = 50000
MAX_RETRIES = 3
RATE_LIMIT_DELAY = 1.0  # seconds


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Classifier
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    # Paginated source (CKAN datastore_search)
    SOURCE_API_URL: str = "https://open.canada.ca/data/en/api/3/action/datastore_search"
    SOURCE_RESOURCE_ID: str = "fac950c0-00d5-4ec1-a4d3-9cbebf98a305"
    REQUEST_TIMEOUT: float = 30.0

    # Durable result log
    OUTPUT_FILE: str = "flagged_contracts.ndjson"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"


settings = Settings()

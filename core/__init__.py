"""
Core utilities and configuration for the contract screening pipeline.

Modules:
    config: Settings from the environment plus fixed pipeline constants
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration

Usage:
    from core.config import settings, BATCH_SIZE
    from core.exceptions import PageFetchError, FatalRunError
    from core.logging import setup_logging
"""

from core.config import (
    settings,
    BATCH_SIZE,
    MIN_CONTRACT_VALUE,
    MAX_RETRIES,
    RATE_LIMIT_DELAY,
)
from core.exceptions import (
    PipelineException,
    ExtractionError,
    PageFetchError,
    ClassificationError,
    ClassifierResponseError,
    LoadError,
    PersistenceError,
    StateLoadError,
    RetryExhaustedError,
    FatalRunError,
)
from core.logging import setup_logging

__all__ = [
    "settings",
    "setup_logging",
    "BATCH_SIZE",
    "MIN_CONTRACT_VALUE",
    "MAX_RETRIES",
    "RATE_LIMIT_DELAY",
    # Exceptions
    "PipelineException",
    "ExtractionError",
    "PageFetchError",
    "ClassificationError",
    "ClassifierResponseError",
    "LoadError",
    "PersistenceError",
    "StateLoadError",
    "RetryExhaustedError",
    "FatalRunError",
]

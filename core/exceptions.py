"""
Custom exceptions for the screening pipeline with structured error context.

Every exception carries a context dictionary for logging, plus the
original exception that triggered it (if any).

Exception Hierarchy:
    PipelineException (base)
    ├── ExtractionError
    │   └── PageFetchError
    ├── ClassificationError
    │   └── ClassifierResponseError
    ├── LoadError
    │   └── PersistenceError
    ├── StateLoadError
    ├── RetryExhaustedError
    └── FatalRunError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (offset, url, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(PipelineException):
    """Base exception for source fetch failures."""
    pass


class PageFetchError(ExtractionError):
    """
    Raised when a page cannot be fetched after all retries.

    Context should include:
        - api_url: The endpoint that failed
        - offset: Offset of the page being fetched
        - limit: Requested page size
        - retry_count: Number of retries attempted
    """
    pass


# ============================================================================
# Classification Errors
# ============================================================================

class ClassificationError(PipelineException):
    """Base exception for classifier failures."""
    pass


class ClassifierResponseError(ClassificationError):
    """
    Raised when the classifier answers with something that is not
    a ``{"contracts": [...]}`` object.
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(PipelineException):
    """Base exception for result persistence failures."""
    pass


class PersistenceError(LoadError):
    """
    Raised when appending to the result log fails.

    Context should include:
        - output_file: Path of the log
        - records: Number of results in the failed append
    """
    pass


# ============================================================================
# State / Control Errors
# ============================================================================

class StateLoadError(PipelineException):
    """Raised when the result log exists but cannot be read."""
    pass


class RetryExhaustedError(PipelineException):
    """Raised by RetryPolicy once every attempt has failed."""

    def __init__(
        self,
        message: str,
        attempts: int,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        super().__init__(message, context, original_exception)
        self.attempts = attempts
        self.context["attempts"] = attempts


class FatalRunError(PipelineException):
    """
    Raised by the runner when the run cannot continue.

    ``last_successful_offset`` is the offset an operator should pass
    to resume the run.
    """

    def __init__(
        self,
        message: str,
        last_successful_offset: int,
        state: Any = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        super().__init__(message, context, original_exception)
        self.last_successful_offset = last_successful_offset
        self.state = state
        self.context["last_successful_offset"] = last_successful_offset

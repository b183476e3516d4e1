"""
Exception hierarchy for the document digitization pipeline.

Every error raised on purpose by the package derives from DigitizerError,
so callers can catch the whole family in one place.
"""

from typing import Optional


class DigitizerError(Exception):
    """Base exception for all digitizer errors."""


class EncodingError(DigitizerError):
    """Raised when input bytes cannot be decoded as a raster image or PDF."""


class BackendError(DigitizerError):
    """Raised when a remote or local backend call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BackendTimeoutError(BackendError, TimeoutError):
    """Raised when a backend call exceeds its deadline."""


class ExtractionError(DigitizerError):
    """Raised when both the primary and the fallback OCR backend failed."""

    def __init__(self, message: str, primary_error: Optional[BaseException] = None):
        super().__init__(message)
        self.primary_error = primary_error


class TranslationError(DigitizerError):
    """Raised when the translation backend fails."""


class PipelineFailed(DigitizerError):
    """Terminal failure of a pipeline run at a given stage."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"Pipeline failed during '{stage}': {cause}")
        self.stage = stage
        self.cause = cause


class DeadlineExceededError(DigitizerError, TimeoutError):
    """Raised when a run exceeds its overall wall-clock budget."""


class DocumentNotFoundError(DigitizerError):
    """Raised when a document id is not present in the store."""


class AccessDeniedError(DigitizerError):
    """Raised when a requester does not own the document."""

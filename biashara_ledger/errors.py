"""
Failure Taxonomy

Every failure the pipeline can surface derives from PipelineError and
carries a FailureCategory. The UI layer shows `user_message`, never
the raw exception text, and the manual-entry path stays open whatever
the category.

DESIGN DECISION: A rejected extraction (low confidence) is NOT an
exception. It is a normal gate decision, see validation.gate.
"""

from enum import Enum
from typing import Optional


class FailureCategory(str, Enum):
    """Distinct user-facing failure categories."""
    PERMISSION_DENIED = "permission_denied"
    DEVICE_UNAVAILABLE = "device_unavailable"
    CAPTURE_FAILED = "capture_failed"
    EMPTY_INPUT = "empty_input"
    OCR_FAILED = "ocr_failed"
    EXTRACTION_NETWORK = "extraction_network"
    EXTRACTION_TIMEOUT = "extraction_timeout"
    EXTRACTION_PROVIDER = "extraction_provider"
    EXTRACTION_SCHEMA_MISMATCH = "extraction_schema_mismatch"
    NORMALIZATION_FAILED = "normalization_failed"
    STORAGE_FAILED = "storage_failed"
    UPLOAD_FAILED = "upload_failed"


USER_MESSAGES: dict[FailureCategory, str] = {
    FailureCategory.PERMISSION_DENIED: (
        "Access to the microphone or camera was denied. "
        "Allow access in your browser settings, or enter the transaction manually."
    ),
    FailureCategory.DEVICE_UNAVAILABLE: (
        "No microphone or camera was found. "
        "Connect a device, or enter the transaction manually."
    ),
    FailureCategory.CAPTURE_FAILED: (
        "Recording stopped unexpectedly. Please try again or enter the transaction manually."
    ),
    FailureCategory.EMPTY_INPUT: (
        "We didn't catch anything to process. Please speak or type the transaction details."
    ),
    FailureCategory.OCR_FAILED: (
        "We couldn't read this receipt. Please retake the photo in good light, "
        "or enter the transaction manually."
    ),
    FailureCategory.EXTRACTION_NETWORK: (
        "We couldn't reach the assistant. Check your connection and try again."
    ),
    FailureCategory.EXTRACTION_TIMEOUT: (
        "The assistant took too long to respond. Please try again."
    ),
    FailureCategory.EXTRACTION_PROVIDER: (
        "The assistant could not process this input. Please enter the transaction manually."
    ),
    FailureCategory.EXTRACTION_SCHEMA_MISMATCH: (
        "We couldn't understand the transaction details. "
        "Try describing it differently, or enter it manually."
    ),
    FailureCategory.NORMALIZATION_FAILED: (
        "Some transaction details are missing. Please review and complete them."
    ),
    FailureCategory.STORAGE_FAILED: (
        "The transaction could not be saved. Please try again."
    ),
    FailureCategory.UPLOAD_FAILED: (
        "The receipt photo could not be uploaded. Please try again."
    ),
}


class PipelineError(Exception):
    """Base exception for everything the capture pipeline surfaces."""

    category: FailureCategory = FailureCategory.CAPTURE_FAILED
    retryable: bool = False

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.category]


# =============================================================================
# CAPTURE PHASE
# =============================================================================

class CaptureError(PipelineError):
    """Capture device or recognizer failed."""
    category = FailureCategory.CAPTURE_FAILED


class CapturePermissionError(CaptureError):
    """User denied access to the microphone or camera."""
    category = FailureCategory.PERMISSION_DENIED


class DeviceUnavailableError(CaptureError):
    """No microphone or camera is present."""
    category = FailureCategory.DEVICE_UNAVAILABLE


class InvalidImageError(CaptureError):
    """An uploaded file is not an acceptable image."""
    category = FailureCategory.OCR_FAILED


# =============================================================================
# NORMALIZATION / EXTRACTION PHASE
# =============================================================================

class EmptyInputError(PipelineError):
    """Text was empty after trimming. No model call was made."""
    category = FailureCategory.EMPTY_INPUT


class OcrFailure(PipelineError):
    """The OCR collaborator could not turn the image into text."""
    category = FailureCategory.OCR_FAILED


class ExtractionFailureReason(str, Enum):
    NETWORK = "network"
    PROVIDER = "provider"
    TIMEOUT = "timeout"
    SCHEMA_MISMATCH = "schema-mismatch"


_REASON_CATEGORIES = {
    ExtractionFailureReason.NETWORK: FailureCategory.EXTRACTION_NETWORK,
    ExtractionFailureReason.TIMEOUT: FailureCategory.EXTRACTION_TIMEOUT,
    ExtractionFailureReason.PROVIDER: FailureCategory.EXTRACTION_PROVIDER,
    ExtractionFailureReason.SCHEMA_MISMATCH: FailureCategory.EXTRACTION_SCHEMA_MISMATCH,
}


class ExtractionFailure(PipelineError):
    """
    The extraction call did not produce a schema-conformant object.

    Only network and timeout failures are safe to retry automatically;
    provider and schema-mismatch failures usually mean bad input.
    """

    def __init__(
        self,
        reason: ExtractionFailureReason,
        message: str = "",
        cause: Optional[BaseException] = None,
    ):
        self.reason = ExtractionFailureReason(reason)
        self.cause = cause
        super().__init__(message or f"Extraction failed: {self.reason.value}")

    @property
    def category(self) -> FailureCategory:
        return _REASON_CATEGORIES[self.reason]

    @property
    def retryable(self) -> bool:
        return self.reason in (
            ExtractionFailureReason.NETWORK,
            ExtractionFailureReason.TIMEOUT,
        )


class NormalizationError(PipelineError):
    """An extraction cannot be turned into a canonical transaction as-is."""
    category = FailureCategory.NORMALIZATION_FAILED


# =============================================================================
# LANGUAGE-MODEL PROVIDER BOUNDARY
# =============================================================================

class ProviderError(Exception):
    """Base exception raised by language-model providers."""
    pass


class ProviderNetworkError(ProviderError):
    """The provider could not be reached."""
    pass


class ProviderTimeoutError(ProviderError):
    """The provider did not answer in time."""
    pass


class ProviderResponseError(ProviderError):
    """The provider answered with an error or refused the request."""
    pass


# =============================================================================
# STORAGE
# =============================================================================

class StorageError(PipelineError):
    """Base exception for storage operations."""
    category = FailureCategory.STORAGE_FAILED


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class UploadError(StorageError):
    """Blob storage rejected or failed the upload."""
    category = FailureCategory.UPLOAD_FAILED

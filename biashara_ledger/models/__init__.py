"""
Data Models Package

All data flowing through the capture pipeline conforms to these schemas.
"""

from biashara_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from biashara_ledger.models.capture import (
    ImageSource,
    RawImageInput,
    RawInput,
    RawTextInput,
    SessionState,
    SpeechSegment,
)
from biashara_ledger.models.transaction import (
    DEFAULT_CATEGORIES,
    FALLBACK_CATEGORY,
    SCHEMA_MODELS,
    CanonicalTransaction,
    CaptureOutcome,
    Category,
    ExtractionData,
    ExtractionResult,
    GateDecision,
    OutcomeStatus,
    ReceiptExtraction,
    ReceiptItem,
    SchemaKind,
    SourceContext,
    TransactionExtraction,
    TransactionItem,
    TransactionSource,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Transaction models
    "DEFAULT_CATEGORIES",
    "FALLBACK_CATEGORY",
    "SCHEMA_MODELS",
    "CanonicalTransaction",
    "CaptureOutcome",
    "Category",
    "ExtractionData",
    "ExtractionResult",
    "GateDecision",
    "OutcomeStatus",
    "ReceiptExtraction",
    "ReceiptItem",
    "SchemaKind",
    "SourceContext",
    "TransactionExtraction",
    "TransactionItem",
    "TransactionSource",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Capture models
    "ImageSource",
    "RawImageInput",
    "RawInput",
    "RawTextInput",
    "SessionState",
    "SpeechSegment",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

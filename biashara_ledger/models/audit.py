"""
Audit Models for Biashara Ledger

Every significant step of a capture attempt is logged for audit purposes.
This provides:
1. Complete traceability from spoken words or photo to saved record
2. Debugging information when extraction goes wrong
3. A record of every human confirmation or rejection

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the capture pipeline has its own event type.
    """
    # Capture
    VOICE_SESSION_STARTED = "voice_session_started"
    VOICE_SESSION_RESTARTED = "voice_session_restarted"
    VOICE_SESSION_STOPPED = "voice_session_stopped"
    CAPTURE_FAILED = "capture_failed"
    IMAGE_ACCEPTED = "image_accepted"

    # Receipt handling
    RECEIPT_UPLOADED = "receipt_uploaded"
    OCR_COMPLETED = "ocr_completed"
    OCR_FAILED = "ocr_failed"

    # Extraction
    EXTRACTION_STARTED = "extraction_started"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    EMPTY_INPUT_REJECTED = "empty_input_rejected"

    # Policy
    GATE_DECIDED = "gate_decided"
    SEMANTIC_VALIDATION_FAILED = "semantic_validation_failed"
    NORMALIZATION_FAILED = "normalization_failed"

    # Human confirmation
    USER_CONFIRMED = "user_confirmed"
    USER_REJECTED = "user_rejected"
    MANUAL_ENTRY = "manual_entry"

    # Persistence
    TRANSACTION_SAVED = "transaction_saved"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'extraction', 'image')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one capture)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.extraction_completed(extraction_id, "transaction", 0.9, cid)
        event = AuditEventBuilder.user_confirmed(extraction_id, cid)
    """

    @staticmethod
    def voice_session_started(
        session_id: UUID,
        locale: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VOICE_SESSION_STARTED,
            entity_type="voice_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description="Voice recording started",
            details={"locale": locale},
            is_user_action=True,
        )

    @staticmethod
    def voice_session_restarted(
        session_id: UUID,
        restart_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VOICE_SESSION_RESTARTED,
            severity=AuditSeverity.DEBUG,
            entity_type="voice_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Speech recognizer restarted ({restart_count})",
            details={"restart_count": restart_count},
        )

    @staticmethod
    def voice_session_stopped(
        session_id: UUID,
        transcript_length: int,
        restart_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VOICE_SESSION_STOPPED,
            entity_type="voice_session",
            entity_id=session_id,
            correlation_id=correlation_id,
            description="Voice recording stopped",
            details={
                "transcript_length": transcript_length,
                "restart_count": restart_count,
            },
        )

    @staticmethod
    def capture_failed(
        category: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CAPTURE_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Capture failed: {category}",
            error_code=category,
            error_message=error_message,
        )

    @staticmethod
    def image_accepted(
        input_id: UUID,
        filename: str,
        size_bytes: int,
        source: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_ACCEPTED,
            entity_type="image",
            entity_id=input_id,
            correlation_id=correlation_id,
            description=f"Image queued: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": size_bytes,
                "source": source,
            },
            is_user_action=True,
        )

    @staticmethod
    def receipt_uploaded(
        input_id: UUID,
        url: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPLOADED,
            entity_type="image",
            entity_id=input_id,
            correlation_id=correlation_id,
            description="Receipt image stored",
            details={"receipt_url": url},
        )

    @staticmethod
    def ocr_completed(
        input_id: UUID,
        text_length: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_COMPLETED,
            entity_type="image",
            entity_id=input_id,
            correlation_id=correlation_id,
            description=f"OCR produced {text_length} characters",
            details={"text_length": text_length},
        )

    @staticmethod
    def ocr_failed(
        input_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCR_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="image",
            entity_id=input_id,
            correlation_id=correlation_id,
            description="OCR could not read the receipt",
            error_message=error_message,
        )

    @staticmethod
    def extraction_completed(
        extraction_id: UUID,
        schema_kind: str,
        confidence: float,
        attempts: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description=f"Extraction completed with {confidence:.0%} confidence",
            details={
                "schema_kind": schema_kind,
                "confidence": confidence,
                "attempts": attempts,
            },
        )

    @staticmethod
    def extraction_failed(
        reason: str,
        error_message: str,
        attempts: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Extraction failed: {reason}",
            details={"reason": reason, "attempts": attempts},
            error_code=reason,
            error_message=error_message,
        )

    @staticmethod
    def empty_input_rejected(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EMPTY_INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Empty input rejected before extraction",
        )

    @staticmethod
    def gate_decided(
        extraction_id: UUID,
        decision: str,
        confidence: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GATE_DECIDED,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description=f"Confidence gate: {decision}",
            details={"decision": decision, "confidence": confidence},
        )

    @staticmethod
    def semantic_validation_failed(
        extraction_id: UUID,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEMANTIC_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description=f"Semantic validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def normalization_failed(
        extraction_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NORMALIZATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description="Extraction needs completing before it can be saved",
            error_message=error_message,
        )

    @staticmethod
    def user_confirmed(
        extraction_id: Optional[UUID],
        corrected_fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CONFIRMED,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description="User confirmed extracted transaction",
            details={"corrected_fields": corrected_fields},
            is_user_action=True,
        )

    @staticmethod
    def user_rejected(
        extraction_id: Optional[UUID],
        reason: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REJECTED,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description="User rejected extracted transaction",
            details={"reason": reason or "No reason provided"},
            is_user_action=True,
        )

    @staticmethod
    def manual_entry(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MANUAL_ENTRY,
            entity_type="transaction",
            correlation_id=correlation_id,
            description="Transaction entered manually",
            is_user_action=True,
        )

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        transaction_type: str,
        amount: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Transaction saved: {transaction_type} {amount:,.2f}",
            details={
                "transaction_id": transaction_id,
                "type": transaction_type,
                "amount": amount,
            },
        )

    @staticmethod
    def save_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            correlation_id=correlation_id,
            description="Transaction could not be saved",
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )

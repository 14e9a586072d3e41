"""
Audit Logger

DESIGN DECISION: Every step of a capture attempt is logged.
This provides:
1. Complete traceability from input to saved record
2. Debugging capability when extraction goes wrong
3. A record of what the user confirmed, corrected or rejected

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from biashara_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from biashara_ledger.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (Google Sheets or in-memory)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("biashara_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------

    async def log_voice_session_started(
        self,
        session_id: UUID,
        locale: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.voice_session_started(
            session_id=session_id,
            locale=locale,
            correlation_id=correlation_id,
        ))

    async def log_voice_session_restarted(
        self,
        session_id: UUID,
        restart_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.voice_session_restarted(
            session_id=session_id,
            restart_count=restart_count,
            correlation_id=correlation_id,
        ))

    async def log_voice_session_stopped(
        self,
        session_id: UUID,
        transcript_length: int,
        restart_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.voice_session_stopped(
            session_id=session_id,
            transcript_length=transcript_length,
            restart_count=restart_count,
            correlation_id=correlation_id,
        ))

    async def log_capture_failed(
        self,
        category: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a device or recognizer failure."""
        await self.log(AuditEventBuilder.capture_failed(
            category=category,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_image_accepted(
        self,
        input_id: UUID,
        filename: str,
        size_bytes: int,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.image_accepted(
            input_id=input_id,
            filename=filename,
            size_bytes=size_bytes,
            source=source,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Receipt handling and extraction
    # -------------------------------------------------------------------------

    async def log_receipt_uploaded(
        self,
        input_id: UUID,
        url: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_uploaded(
            input_id=input_id,
            url=url,
            correlation_id=correlation_id,
        ))

    async def log_ocr_completed(
        self,
        input_id: UUID,
        text_length: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.ocr_completed(
            input_id=input_id,
            text_length=text_length,
            correlation_id=correlation_id,
        ))

    async def log_ocr_failed(
        self,
        input_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.ocr_failed(
            input_id=input_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_extraction_completed(
        self,
        extraction_id: UUID,
        schema_kind: str,
        confidence: float,
        attempts: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_completed(
            extraction_id=extraction_id,
            schema_kind=schema_kind,
            confidence=confidence,
            attempts=attempts,
            correlation_id=correlation_id,
        ))

    async def log_extraction_failed(
        self,
        reason: str,
        error_message: str,
        attempts: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_failed(
            reason=reason,
            error_message=error_message,
            attempts=attempts,
            correlation_id=correlation_id,
        ))

    async def log_empty_input_rejected(self, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.empty_input_rejected(correlation_id=correlation_id))

    # -------------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------------

    async def log_gate_decided(
        self,
        extraction_id: UUID,
        decision: str,
        confidence: float,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.gate_decided(
            extraction_id=extraction_id,
            decision=decision,
            confidence=confidence,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        extraction_id: UUID,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log semantic validation errors."""
        await self.log(AuditEventBuilder.semantic_validation_failed(
            extraction_id=extraction_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_normalization_failed(
        self,
        extraction_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.normalization_failed(
            extraction_id=extraction_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Human confirmation and persistence
    # -------------------------------------------------------------------------

    async def log_user_confirmed(
        self,
        extraction_id: Optional[UUID],
        corrected_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log user confirmation."""
        await self.log(AuditEventBuilder.user_confirmed(
            extraction_id=extraction_id,
            corrected_fields=corrected_fields,
            correlation_id=correlation_id,
        ))

    async def log_user_rejected(
        self,
        extraction_id: Optional[UUID],
        reason: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log user rejection."""
        await self.log(AuditEventBuilder.user_rejected(
            extraction_id=extraction_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_manual_entry(self, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.manual_entry(correlation_id=correlation_id))

    async def log_transaction_saved(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: float,
        correlation_id: UUID,
    ) -> None:
        """Log transaction save."""
        await self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a voice recording).
    Pass it through all subsequent operations.
    """
    return uuid4()

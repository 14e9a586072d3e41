"""
Main Orchestrator for Biashara Ledger

This module ties together all the components and defines the
end-to-end capture flows:
1. Voice / text (transcript -> extract -> validate -> gate -> normalize -> save)
2. Receipt photo (image -> upload -> OCR -> extract -> validate -> gate -> normalize -> save)
3. Manual entry (form fields -> canonical transaction -> save)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only ACCEPTED extractions may be saved without confirmation
- NEEDS_REVIEW extractions are saved only through confirm_and_save()
- REJECTED and failed attempts never carry a transaction
- Manual entry is always available
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import datetime
from typing import Any, Callable, Optional, Sequence
from uuid import UUID

import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from biashara_ledger.agents import CategorySuggester, ExtractionEngine
from biashara_ledger.audit import AuditLogger, create_correlation_id
from biashara_ledger.config import AppSettings, get_settings
from biashara_ledger.errors import (
    EmptyInputError,
    ExtractionFailure,
    NormalizationError,
    OcrFailure,
    PipelineError,
    StorageError,
    UploadError,
)
from biashara_ledger.models.capture import RawImageInput, RawInput, RawTextInput
from biashara_ledger.models.transaction import (
    FALLBACK_CATEGORY,
    CanonicalTransaction,
    CaptureOutcome,
    Category,
    ExtractionResult,
    GateDecision,
    OutcomeStatus,
    SchemaKind,
    SourceContext,
    TransactionExtraction,
    TransactionSource,
    TransactionType,
)
from biashara_ledger.normalization import build_transaction, draft_fields, normalize
from biashara_ledger.services.image import CloudinaryReceiptStorage
from biashara_ledger.services.llm import GeminiProvider
from biashara_ledger.services.ocr import FixtureOcrNormalizer, MindeeOcrNormalizer, OcrNormalizer
from biashara_ledger.services.storage import (
    BlobStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryBlobStorage,
    InMemoryTransactionStorage,
    TransactionStorageInterface,
    default_categories,
)
from biashara_ledger.validation import ConfidenceGate, ExtractionValidator

logger = structlog.get_logger(__name__)

MESSAGES = {
    OutcomeStatus.ACCEPTED: "Transaction details captured.",
    OutcomeStatus.NEEDS_REVIEW: "Please check the details before saving.",
    OutcomeStatus.REJECTED: (
        "We couldn't understand this clearly enough. "
        "Please try again or enter the transaction manually."
    ),
}

# Corrections may not override where the record came from
PROTECTED_FIELDS = {"receipt_url", "extraction_id", "source"}

ProgressCallback = Callable[[int, int, CaptureOutcome], Any]


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, ExtractionFailure) and error.retryable


def _status_for(decision: GateDecision) -> OutcomeStatus:
    return OutcomeStatus(decision.value)


class TransactionCaptureFlow:
    """
    Orchestrates every way a transaction can be captured.

    Flow for each input:
    1. Normalize → OCR for images (after the receipt is stored)
    2. Extract → schema-constrained model call, retried once on network/timeout
    3. Validate → semantic checks (errors demote to review)
    4. Gate → accepted / needs review / rejected
    5. Normalize → CanonicalTransaction
    6. Save → automatically for ACCEPTED, otherwise via confirm_and_save()
    """

    def __init__(
        self,
        engine: ExtractionEngine,
        ocr: OcrNormalizer,
        transaction_storage: Optional[TransactionStorageInterface] = None,
        blob_storage: Optional[BlobStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        gate: Optional[ConfidenceGate] = None,
        validator: Optional[ExtractionValidator] = None,
        categorizer: Optional[CategorySuggester] = None,
        settings: Optional[AppSettings] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._settings = settings or get_settings().app
        self._engine = engine
        self._ocr = ocr
        self._transaction_storage = transaction_storage
        self._blob_storage = blob_storage
        self._audit_logger = audit_logger or AuditLogger()
        self._gate = gate or ConfidenceGate(settings=self._settings)
        self._validator = validator or ExtractionValidator(self._settings)
        self._categorizer = categorizer
        self._clock = clock

    # =========================================================================
    # Extraction steps
    # =========================================================================

    async def extract_with_retry(
        self,
        text: str,
        schema_kind: SchemaKind,
        locale: str,
        correlation_id: UUID,
    ) -> ExtractionResult:
        """
        Extract, retrying network and timeout failures.

        The engine never retries by itself; this is the caller-side
        policy, bounded by `extraction_max_attempts`.
        """
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.extraction_max_attempts),
                retry=retry_if_exception(_is_retryable),
                wait=wait_exponential(
                    multiplier=self._settings.extraction_retry_backoff_seconds,
                    max=10,
                ),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    result = await self._engine.extract(text, schema_kind, locale)
        except EmptyInputError:
            await self._audit_logger.log_empty_input_rejected(correlation_id)
            raise
        except ExtractionFailure as e:
            await self._audit_logger.log_extraction_failed(
                reason=e.reason.value,
                error_message=str(e),
                attempts=attempts,
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_extraction_completed(
            extraction_id=result.extraction_id,
            schema_kind=result.schema_kind.value,
            confidence=result.confidence,
            attempts=attempts,
            correlation_id=correlation_id,
        )
        return result

    async def _categories(self, user_id: str) -> list[Category]:
        if self._transaction_storage is None:
            return default_categories()
        try:
            return await self._transaction_storage.list_categories(user_id)
        except StorageError as e:
            logger.warning("categories_unavailable", user_id=user_id, error=str(e))
            return default_categories()

    async def _suggest_category(
        self,
        result: ExtractionResult,
        locale: str,
        categories: list[Category],
    ) -> Optional[str]:
        data = result.data
        if (
            not self._settings.auto_categorize
            or self._categorizer is None
            or not isinstance(data, TransactionExtraction)
            or (data.category and data.category.strip())
        ):
            return None
        return await self._categorizer.suggest(
            description=data.description,
            transaction_type=data.type,
            locale=locale,
            categories=categories,
        )

    async def _save(
        self,
        transaction: CanonicalTransaction,
        user_id: str,
        correlation_id: UUID,
    ) -> str:
        try:
            transaction_id = await self._transaction_storage.save_transaction(transaction, user_id)
        except StorageError as e:
            await self._audit_logger.log_save_failed(str(e), correlation_id)
            raise

        await self._audit_logger.log_transaction_saved(
            transaction_id=transaction_id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            correlation_id=correlation_id,
        )
        return transaction_id

    def _failed(
        self,
        error: PipelineError,
        correlation_id: UUID,
        source_index: Optional[int] = None,
    ) -> CaptureOutcome:
        return CaptureOutcome(
            correlation_id=correlation_id,
            status=OutcomeStatus.FAILED,
            failure_category=error.category.value,
            message=error.user_message,
            source_index=source_index,
        )

    async def _complete(
        self,
        result: ExtractionResult,
        user_id: str,
        locale: str,
        source: TransactionSource,
        captured_at: datetime,
        correlation_id: UUID,
        receipt_url: Optional[str] = None,
        source_index: Optional[int] = None,
    ) -> CaptureOutcome:
        """Validate, gate, normalize and (maybe) save one extraction."""
        validation = self._validator.validate(result, today=captured_at.date())
        decision = self._gate(result)

        await self._audit_logger.log_gate_decided(
            extraction_id=result.extraction_id,
            decision=decision.value,
            confidence=result.confidence,
            correlation_id=correlation_id,
        )

        if decision == GateDecision.REJECTED:
            return CaptureOutcome(
                correlation_id=correlation_id,
                status=OutcomeStatus.REJECTED,
                decision=decision,
                extraction=result,
                validation=validation,
                message=MESSAGES[OutcomeStatus.REJECTED],
                source_index=source_index,
            )

        status = _status_for(decision)
        if validation.has_errors:
            await self._audit_logger.log_validation_failed(
                extraction_id=result.extraction_id,
                issues=[issue.model_dump() for issue in validation.issues],
                correlation_id=correlation_id,
            )
            status = OutcomeStatus.NEEDS_REVIEW

        categories = await self._categories(user_id)
        context = SourceContext(
            captured_at=captured_at,
            source=source,
            receipt_url=receipt_url,
            categories=tuple(categories),
            suggested_category=await self._suggest_category(result, locale, categories),
        )

        outcome = CaptureOutcome(
            correlation_id=correlation_id,
            status=status,
            decision=decision,
            extraction=result,
            context=context,
            validation=validation,
            message=MESSAGES[status],
            source_index=source_index,
        )

        try:
            transaction = normalize(result, result.schema_kind, context)
        except NormalizationError as e:
            await self._audit_logger.log_normalization_failed(
                extraction_id=result.extraction_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return outcome.model_copy(update={
                "status": OutcomeStatus.NEEDS_REVIEW,
                "failure_category": e.category.value,
                "message": e.user_message,
            })

        outcome = outcome.model_copy(update={"transaction": transaction})

        if (
            status == OutcomeStatus.ACCEPTED
            and self._settings.auto_save_accepted
            and self._transaction_storage is not None
        ):
            try:
                transaction_id = await self._save(transaction, user_id, correlation_id)
            except StorageError as e:
                return outcome.model_copy(update={
                    "failure_category": e.category.value,
                    "message": e.user_message,
                })
            outcome = outcome.model_copy(update={
                "saved": True,
                "transaction_id": transaction_id,
            })

        return outcome

    # =========================================================================
    # Entry points
    # =========================================================================

    async def process_text(
        self,
        text: str,
        locale: Optional[str] = None,
        user_id: str = "",
        source: TransactionSource = TransactionSource.TEXT,
        correlation_id: Optional[UUID] = None,
        captured_at: Optional[datetime] = None,
    ) -> CaptureOutcome:
        """
        Process a voice transcript or typed description.

        Returns:
            CaptureOutcome. Pipeline failures come back as FAILED
            outcomes carrying a failure category and a user message.
        """
        correlation_id = correlation_id or create_correlation_id()
        locale = locale or self._settings.default_locale
        captured_at = captured_at or self._clock()

        try:
            result = await self.extract_with_retry(
                text, SchemaKind.TRANSACTION, locale, correlation_id
            )
        except (EmptyInputError, ExtractionFailure) as e:
            return self._failed(e, correlation_id)

        return await self._complete(
            result,
            user_id=user_id,
            locale=locale,
            source=source,
            captured_at=captured_at,
            correlation_id=correlation_id,
        )

    def receipt_path(self, image: RawImageInput, user_id: str) -> str:
        """Where a receipt image is stored."""
        owner = user_id or "anonymous"
        return f"receipts/{owner}/{image.captured_at:%Y%m%dT%H%M%S}-{image.filename}"

    async def process_image(
        self,
        image: RawImageInput,
        locale: Optional[str] = None,
        user_id: str = "",
        correlation_id: Optional[UUID] = None,
        source_index: Optional[int] = None,
    ) -> CaptureOutcome:
        """
        Process one receipt image.

        The image is stored first so the canonical transaction can
        carry its URL; OCR and extraction follow.
        """
        correlation_id = correlation_id or create_correlation_id()
        locale = locale or self._settings.default_locale

        receipt_url = None
        if self._blob_storage is not None:
            try:
                receipt_url = await self._blob_storage.upload(
                    image.data,
                    self.receipt_path(image, user_id),
                    image.mime_type,
                )
            except UploadError as e:
                await self._audit_logger.log_external_service_error(
                    service="blob_storage",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                return self._failed(e, correlation_id, source_index)
            await self._audit_logger.log_receipt_uploaded(
                input_id=image.input_id,
                url=receipt_url,
                correlation_id=correlation_id,
            )

        try:
            text = await self._ocr.normalize(image)
        except OcrFailure as e:
            await self._audit_logger.log_ocr_failed(
                input_id=image.input_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return self._failed(e, correlation_id, source_index)
        await self._audit_logger.log_ocr_completed(
            input_id=image.input_id,
            text_length=len(text),
            correlation_id=correlation_id,
        )

        try:
            result = await self.extract_with_retry(
                text, SchemaKind.RECEIPT, locale, correlation_id
            )
        except (EmptyInputError, ExtractionFailure) as e:
            return self._failed(e, correlation_id, source_index)

        return await self._complete(
            result,
            user_id=user_id,
            locale=locale,
            source=TransactionSource.PHOTO,
            captured_at=image.captured_at,
            correlation_id=correlation_id,
            receipt_url=receipt_url,
            source_index=source_index,
        )

    async def process_images(
        self,
        images: Sequence[RawImageInput],
        locale: Optional[str] = None,
        user_id: str = "",
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[CaptureOutcome]:
        """
        Process a batch of receipt images strictly one after another.

        Every image yields its own outcome tagged with its position; a
        failed image does not stop the rest of the batch.
        """
        outcomes = []
        total = len(images)

        for index, image in enumerate(images):
            outcome = await self.process_image(
                image,
                locale=locale,
                user_id=user_id,
                source_index=index,
            )
            outcomes.append(outcome)
            if on_progress is not None:
                on_progress(index + 1, total, outcome)

        return outcomes

    async def process_raw(
        self,
        raw: RawInput,
        locale: Optional[str] = None,
        user_id: str = "",
    ) -> CaptureOutcome:
        """Dispatch one captured input to the matching flow."""
        if isinstance(raw, RawImageInput):
            return await self.process_image(raw, locale=locale, user_id=user_id)

        if isinstance(raw, RawTextInput):
            return await self.process_text(
                raw.text,
                locale=locale or raw.locale,
                user_id=user_id,
                source=TransactionSource.VOICE if raw.from_voice else TransactionSource.TEXT,
                captured_at=raw.captured_at,
            )

        raise TypeError(f"Unsupported input: {type(raw).__name__}")

    # =========================================================================
    # Human decisions
    # =========================================================================

    async def confirm_and_save(
        self,
        outcome: CaptureOutcome,
        user_id: str = "",
        corrections: Optional[dict[str, Any]] = None,
    ) -> CaptureOutcome:
        """
        Save an outcome after the user reviewed it.

        CRITICAL: This is called ONLY after explicit user confirmation.

        Args:
            outcome: An ACCEPTED or NEEDS_REVIEW outcome
            user_id: Owner of the transaction
            corrections: Canonical fields the user edited

        Raises:
            ValueError: Outcome has nothing to confirm, or a correction
                targets an unknown or protected field
            NormalizationError: The corrected fields are still invalid
            StorageError: The save failed
        """
        if outcome.saved:
            return outcome
        if (
            outcome.status in (OutcomeStatus.REJECTED, OutcomeStatus.FAILED)
            or outcome.extraction is None
            or (outcome.transaction is None and outcome.context is None)
        ):
            raise ValueError("Nothing to confirm; enter the transaction manually instead")

        corrections = dict(corrections or {})
        unknown = set(corrections) - set(CanonicalTransaction.model_fields)
        if unknown:
            raise ValueError(f"Unknown transaction fields: {sorted(unknown)}")
        protected = set(corrections) & PROTECTED_FIELDS
        if protected:
            raise ValueError(f"Fields cannot be corrected: {sorted(protected)}")

        if outcome.transaction is not None:
            fields = outcome.transaction.model_dump()
        else:
            fields = draft_fields(outcome.extraction, outcome.extraction.schema_kind, outcome.context)
        fields.update(corrections)

        transaction = build_transaction(fields)
        correlation_id = outcome.correlation_id or create_correlation_id()

        await self._audit_logger.log_user_confirmed(
            extraction_id=outcome.extraction.extraction_id,
            corrected_fields=sorted(corrections),
            correlation_id=correlation_id,
        )

        update = {
            "status": OutcomeStatus.ACCEPTED,
            "transaction": transaction,
            "failure_category": None,
            "message": MESSAGES[OutcomeStatus.ACCEPTED],
        }
        if self._transaction_storage is not None:
            update["transaction_id"] = await self._save(transaction, user_id, correlation_id)
            update["saved"] = True

        return outcome.model_copy(update=update)

    async def reject_outcome(
        self,
        outcome: CaptureOutcome,
        reason: Optional[str] = None,
    ) -> None:
        """
        Record that user rejected the extraction.

        This is called when user chooses not to save after reviewing.
        """
        await self._audit_logger.log_user_rejected(
            extraction_id=outcome.extraction.extraction_id if outcome.extraction else None,
            reason=reason,
            correlation_id=outcome.correlation_id or create_correlation_id(),
        )

    async def record_manual_transaction(
        self,
        fields: dict[str, Any],
        user_id: str = "",
    ) -> CaptureOutcome:
        """
        Save a transaction typed into the manual entry form.

        Always available, whatever happened to voice or photo capture.

        Raises:
            NormalizationError: The form fields are invalid
            StorageError: The save failed
        """
        correlation_id = create_correlation_id()
        fields = dict(fields)
        fields.setdefault("date", self._clock().date())
        fields["source"] = TransactionSource.MANUAL

        if not fields.get("category"):
            try:
                fields["category"] = FALLBACK_CATEGORY[TransactionType(fields.get("type"))]
            except ValueError as e:
                raise NormalizationError(f"Unknown transaction type: {fields.get('type')}") from e

        transaction = build_transaction(fields)
        await self._audit_logger.log_manual_entry(correlation_id)

        outcome = CaptureOutcome(
            correlation_id=correlation_id,
            status=OutcomeStatus.ACCEPTED,
            transaction=transaction,
            message=MESSAGES[OutcomeStatus.ACCEPTED],
        )
        if self._transaction_storage is not None:
            transaction_id = await self._save(transaction, user_id, correlation_id)
            outcome = outcome.model_copy(update={"saved": True, "transaction_id": transaction_id})
        return outcome


def create_app_components(
    use_storage: bool = True,
) -> tuple[TransactionCaptureFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for running without storage.

    Returns:
        (capture_flow, sheets_client)

    Services that are not configured fall back to local stand-ins:
    in-memory storage for Sheets and Cloudinary, fixture OCR for Mindee.
    The Gemini key is required.
    """
    settings = get_settings()
    app_settings = settings.app

    sheets_client = None
    transaction_storage: TransactionStorageInterface = InMemoryTransactionStorage()
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except ValidationError as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    blob_storage: BlobStorageInterface
    try:
        blob_storage = CloudinaryReceiptStorage(settings.cloudinary)
    except ValidationError as e:
        logger.warning("cloudinary_not_configured", error=str(e))
        blob_storage = InMemoryBlobStorage()

    ocr: OcrNormalizer
    try:
        ocr = MindeeOcrNormalizer(settings.mindee, app_settings)
    except ValidationError as e:
        logger.warning("mindee_not_configured", error=str(e))
        ocr = FixtureOcrNormalizer()

    provider = GeminiProvider(settings.gemini)

    flow = TransactionCaptureFlow(
        engine=ExtractionEngine(provider, app_settings),
        ocr=ocr,
        transaction_storage=transaction_storage,
        blob_storage=blob_storage,
        audit_logger=audit_logger,
        categorizer=CategorySuggester(provider, app_settings),
        settings=app_settings,
    )

    return flow, sheets_client

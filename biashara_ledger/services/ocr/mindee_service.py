"""
OCR Service using Mindee

DESIGN DECISION: We use Mindee because:
1. Specialized for financial documents (receipts, invoices)
2. Returns the full page text alongside structured fields
3. Handles thermal-printer receipts reasonably well

This service handles:
1. Rejecting photos that are obviously unreadable
2. Sending the image bytes to the Mindee receipt API
3. Returning the printed text for the extraction engine

IMPORTANT: We do NOT use Mindee's structured fields as the transaction.
Extraction, confidence and categorization belong to the extraction
engine so that voice, text and photo inputs share one path.
"""

import asyncio
from typing import Optional

import structlog
from mindee import Client, PredictResponse
from mindee.error import MindeeHTTPError
from mindee.product import ReceiptV5
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from biashara_ledger.config import AppSettings, MindeeSettings, get_settings
from biashara_ledger.errors import OcrFailure
from biashara_ledger.models.capture import RawImageInput
from biashara_ledger.services.ocr.interface import OcrNormalizer
from biashara_ledger.services.ocr.quality import ImageQuality, assess_image_quality

logger = structlog.get_logger(__name__)


class MindeeOcrNormalizer(OcrNormalizer):
    """
    OCR normalizer backed by the Mindee ReceiptV5 product.

    IMPORTANT BOUNDARIES:
    1. This service ONLY reads text - it does NOT interpret it
    2. Unusable photos are rejected before any API call
    3. An empty read is a failure, never an empty string
    """

    name = "mindee"

    def __init__(
        self,
        settings: Optional[MindeeSettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().mindee
        self._app_settings = app_settings or get_settings().app
        self._client: Optional[Client] = None

    def _get_client(self) -> Client:
        """Get or create Mindee client."""
        if self._client is None:
            self._client = Client(api_key=self._settings.api_key)
        return self._client

    def _check_quality(self, image: RawImageInput) -> None:
        quality, score, issues = assess_image_quality(image.data)
        if quality == ImageQuality.UNUSABLE or score < self._app_settings.min_image_quality_score:
            logger.info(
                "ocr_quality_rejected",
                input_id=str(image.input_id),
                score=score,
                issues=issues,
            )
            raise OcrFailure(
                "Image quality too low for reading: " + "; ".join(issues or ["unknown"])
            )

    @retry(
        retry=retry_if_exception_type(MindeeHTTPError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _parse(self, data: bytes, filename: str) -> PredictResponse:
        client = self._get_client()
        input_source = client.source_from_bytes(data, filename)
        return client.parse(ReceiptV5, input_source, include_words=True)

    @staticmethod
    def _text_from_fields(prediction) -> str:
        """Rebuild a minimal receipt text when no word-level OCR came back."""
        parts = []

        supplier = getattr(prediction, "supplier_name", None)
        if supplier is not None and supplier.value:
            parts.append(str(supplier.value))

        receipt_date = getattr(prediction, "date", None)
        if receipt_date is not None and receipt_date.value:
            parts.append(f"Date: {receipt_date.value}")

        for item in getattr(prediction, "line_items", None) or []:
            description = getattr(item, "description", None) or "Item"
            quantity = getattr(item, "quantity", None)
            amount = getattr(item, "total_amount", None)
            if amount is None:
                continue
            prefix = f"{quantity:g} x " if quantity else ""
            parts.append(f"{prefix}{description} {amount:.2f}")

        total = getattr(prediction, "total_amount", None)
        if total is not None and total.value is not None:
            parts.append(f"TOTAL {total.value:.2f}")

        return "\n".join(parts)

    async def normalize(self, image: RawImageInput) -> str:
        """
        Read the text printed on a receipt image.

        Raises:
            OcrFailure: If the image is unreadable or Mindee fails
        """
        self._check_quality(image)

        try:
            result = await asyncio.to_thread(self._parse, image.data, image.filename)
        except Exception as e:
            logger.warning("ocr_request_failed", input_id=str(image.input_id), error=str(e))
            raise OcrFailure(f"Mindee could not read the receipt: {e}") from e

        document = result.document
        text = str(document.ocr).strip() if document.ocr is not None else ""
        if not text:
            text = self._text_from_fields(document.inference.prediction).strip()

        if not text:
            raise OcrFailure("No text found on the receipt")

        logger.info("ocr_completed", input_id=str(image.input_id), text_length=len(text))
        return text

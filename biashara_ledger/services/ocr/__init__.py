"""OCR normalization package."""

from biashara_ledger.services.ocr.fixture import FIXTURE_RECEIPTS, FixtureOcrNormalizer
from biashara_ledger.services.ocr.interface import OcrNormalizer
from biashara_ledger.services.ocr.mindee_service import MindeeOcrNormalizer
from biashara_ledger.services.ocr.quality import ImageQuality, assess_image_quality

__all__ = [
    "FIXTURE_RECEIPTS",
    "FixtureOcrNormalizer",
    "ImageQuality",
    "MindeeOcrNormalizer",
    "OcrNormalizer",
    "assess_image_quality",
]

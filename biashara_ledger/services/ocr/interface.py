"""
OCR Normalizer Contract

The pipeline treats OCR as an opaque service boundary:
given image bytes, return plain text or raise OcrFailure.
Production correctness depends entirely on the real collaborator
meeting this contract.
"""

from abc import ABC, abstractmethod

from biashara_ledger.models.capture import RawImageInput


class OcrNormalizer(ABC):
    """Turns a receipt image into text the extraction engine can read."""

    name: str = "ocr"

    @abstractmethod
    async def normalize(self, image: RawImageInput) -> str:
        """
        Read the text printed on a receipt.

        Raises:
            OcrFailure: If the image cannot be read
        """
        pass

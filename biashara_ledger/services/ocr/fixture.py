"""
Fixture OCR for development and demos.

Returns one of a few sample Nairobi receipts instead of calling an OCR
service. The receipt is chosen from a digest of the image bytes, so the
same photo always reads the same way.
"""

import hashlib

from biashara_ledger.models.capture import RawImageInput
from biashara_ledger.services.ocr.interface import OcrNormalizer


FIXTURE_RECEIPTS: tuple[str, ...] = (
    """CENTRAL MARKET
123 Market Street
Nairobi, Kenya

Date: {date}
Time: {time}

Rice 10kg          KES 500.00
Beans 5kg          KES 300.00
Cooking Oil 2L     KES 200.00

Subtotal:          KES 1000.00
Tax:               KES 160.00
Total:             KES 1160.00

Payment: Cash
Thank you for shopping with us!""",
    """CITY TRANSPORT
Bus Terminal

Date: {date}

Route: CBD - Westlands
Fare:              KES 50.00

Total:             KES 50.00

Keep this receipt""",
    """OFFICE SUPPLIES LTD
456 Business Ave

Date: {date}

A4 Paper 1 ream    KES 400.00
Pens (pack of 10)  KES 150.00
Stapler            KES 250.00

Subtotal:          KES 800.00
VAT 16%:           KES 128.00
Total:             KES 928.00""",
)


class FixtureOcrNormalizer(OcrNormalizer):
    """Deterministic stand-in used when no OCR credentials are configured."""

    name = "fixture"

    @staticmethod
    def pick(data: bytes) -> int:
        digest = hashlib.sha256(data).digest()
        return digest[0] % len(FIXTURE_RECEIPTS)

    async def normalize(self, image: RawImageInput) -> str:
        template = FIXTURE_RECEIPTS[self.pick(image.data)]
        return template.format(
            date=image.captured_at.date().isoformat(),
            time=image.captured_at.strftime("%H:%M:%S"),
        )

"""Tests for OCR normalization."""

from io import BytesIO
from types import SimpleNamespace

import pytest
from PIL import Image

from conftest import CAPTURED_AT

from biashara_ledger.config import AppSettings, MindeeSettings
from biashara_ledger.errors import OcrFailure
from biashara_ledger.models import RawImageInput
from biashara_ledger.services.ocr import (
    FIXTURE_RECEIPTS,
    FixtureOcrNormalizer,
    ImageQuality,
    MindeeOcrNormalizer,
    assess_image_quality,
)


def png_bytes(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def readable_receipt() -> bytes:
    return png_bytes(Image.linear_gradient("L").resize((600, 800)))


def black_square() -> bytes:
    return png_bytes(Image.new("L", (100, 100), color=0))


def image_input(data: bytes) -> RawImageInput:
    return RawImageInput(
        data=data,
        mime_type="image/png",
        filename="receipt.png",
        captured_at=CAPTURED_AT,
    )


def mindee_response(ocr_text, prediction=None):
    return SimpleNamespace(
        document=SimpleNamespace(
            ocr=ocr_text,
            inference=SimpleNamespace(prediction=prediction),
        )
    )


@pytest.fixture
def mindee():
    return MindeeOcrNormalizer(MindeeSettings(api_key="test"), AppSettings())


class TestImageQuality:
    def test_readable_image(self):
        quality, score, issues = assess_image_quality(readable_receipt())
        assert quality == ImageQuality.GOOD
        assert score == 1.0
        assert issues == []

    def test_tiny_black_image_is_unusable(self):
        quality, score, issues = assess_image_quality(black_square())
        assert quality == ImageQuality.UNUSABLE
        assert any("dark" in issue for issue in issues)
        assert any("resolution" in issue for issue in issues)

    def test_not_an_image(self):
        quality, score, _ = assess_image_quality(b"definitely not a picture")
        assert quality == ImageQuality.UNUSABLE
        assert score == 0.0


class TestMindeeOcr:
    @pytest.mark.asyncio
    async def test_unusable_image_never_reaches_mindee(self, mindee, monkeypatch):
        calls = []
        monkeypatch.setattr(mindee, "_parse", lambda data, filename: calls.append(filename))

        with pytest.raises(OcrFailure):
            await mindee.normalize(image_input(black_square()))

        assert calls == []

    @pytest.mark.asyncio
    async def test_returns_page_text(self, mindee, monkeypatch):
        monkeypatch.setattr(
            mindee,
            "_parse",
            lambda data, filename: mindee_response("CENTRAL MARKET\nTotal: KES 1160.00\n"),
        )

        text = await mindee.normalize(image_input(readable_receipt()))

        assert text == "CENTRAL MARKET\nTotal: KES 1160.00"

    @pytest.mark.asyncio
    async def test_falls_back_to_fields(self, mindee, monkeypatch):
        prediction = SimpleNamespace(
            supplier_name=SimpleNamespace(value="CITY TRANSPORT"),
            date=SimpleNamespace(value="2024-03-15"),
            line_items=[],
            total_amount=SimpleNamespace(value=50.0),
        )
        monkeypatch.setattr(
            mindee, "_parse", lambda data, filename: mindee_response(None, prediction)
        )

        text = await mindee.normalize(image_input(readable_receipt()))

        assert "CITY TRANSPORT" in text
        assert "TOTAL 50.00" in text

    @pytest.mark.asyncio
    async def test_empty_read_is_failure(self, mindee, monkeypatch):
        prediction = SimpleNamespace(
            supplier_name=None, date=None, line_items=[], total_amount=None
        )
        monkeypatch.setattr(
            mindee, "_parse", lambda data, filename: mindee_response("  ", prediction)
        )

        with pytest.raises(OcrFailure):
            await mindee.normalize(image_input(readable_receipt()))

    @pytest.mark.asyncio
    async def test_api_error_is_failure(self, mindee, monkeypatch):
        def broken(data, filename):
            raise RuntimeError("HTTP 500")

        monkeypatch.setattr(mindee, "_parse", broken)

        with pytest.raises(OcrFailure) as exc_info:
            await mindee.normalize(image_input(readable_receipt()))
        assert "HTTP 500" in str(exc_info.value)

    def test_text_from_fields(self):
        prediction = SimpleNamespace(
            supplier_name=SimpleNamespace(value="CENTRAL MARKET"),
            date=SimpleNamespace(value="2024-03-14"),
            line_items=[
                SimpleNamespace(description="Rice 10kg", quantity=1.0, total_amount=500.0),
                SimpleNamespace(description=None, quantity=None, total_amount=300.0),
                SimpleNamespace(description="Bag", quantity=2.0, total_amount=None),
            ],
            total_amount=SimpleNamespace(value=1160.0),
        )

        text = MindeeOcrNormalizer._text_from_fields(prediction)

        assert text.splitlines() == [
            "CENTRAL MARKET",
            "Date: 2024-03-14",
            "1 x Rice 10kg 500.00",
            "Item 300.00",
            "TOTAL 1160.00",
        ]


class TestFixtureOcr:
    @pytest.mark.asyncio
    async def test_same_bytes_same_receipt(self):
        ocr = FixtureOcrNormalizer()
        first = await ocr.normalize(image_input(b"photo-1"))
        second = await ocr.normalize(image_input(b"photo-1"))
        assert first == second

    @pytest.mark.asyncio
    async def test_capture_date_is_printed(self):
        text = await FixtureOcrNormalizer().normalize(image_input(b"photo-2"))
        assert "2024-03-15" in text

    def test_pick_is_in_range(self):
        for i in range(20):
            assert 0 <= FixtureOcrNormalizer.pick(f"img-{i}".encode()) < len(FIXTURE_RECEIPTS)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

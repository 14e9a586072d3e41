"""
Test fixtures for Biashara Ledger.

Every external collaborator (language model, OCR, storage, devices)
is replaced by an in-process fake. No test makes a network call.
"""

import asyncio
import json
from datetime import datetime
from typing import Optional, Sequence

import pytest

from biashara_ledger.agents import CategorySuggester, ExtractionEngine
from biashara_ledger.audit import AuditLogger
from biashara_ledger.capture.devices import (
    CameraDevice,
    MediaDevice,
    RecognitionListener,
    SpeechRecognizer,
)
from biashara_ledger.config import AppSettings
from biashara_ledger.errors import (
    CaptureError,
    OcrFailure,
    StorageError,
    UploadError,
)
from biashara_ledger.models.capture import RawImageInput
from biashara_ledger.models.transaction import CanonicalTransaction, Category
from biashara_ledger.orchestrator import TransactionCaptureFlow
from biashara_ledger.services.llm.provider import LanguageModelProvider
from biashara_ledger.services.ocr.interface import OcrNormalizer
from biashara_ledger.services.storage import (
    BlobStorageInterface,
    InMemoryAuditStorage,
    InMemoryBlobStorage,
    InMemoryTransactionStorage,
    TransactionStorageInterface,
)

CAPTURED_AT = datetime(2024, 3, 15, 9, 30, 0)

SLOW = object()


# =============================================================================
# FAKES
# =============================================================================

class FakeProvider(LanguageModelProvider):
    """
    Replays queued responses.

    A dict is answered as JSON, a str verbatim, an exception is raised,
    and SLOW never answers within any sensible timeout.
    """

    model_name = "fake-model"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def generate_structured(
        self,
        system_instruction: str,
        user_prompt: str,
        response_schema: dict,
        timeout_seconds: float,
    ) -> str:
        self.calls.append({
            "system_instruction": system_instruction,
            "user_prompt": user_prompt,
            "response_schema": response_schema,
            "timeout_seconds": timeout_seconds,
        })
        if not self.responses:
            raise AssertionError("FakeProvider called more often than expected")

        response = self.responses.pop(0)
        if response is SLOW:
            await asyncio.sleep(30)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


class FakeOcr(OcrNormalizer):
    name = "fake"

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: list[RawImageInput] = []

    async def normalize(self, image: RawImageInput) -> str:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.text


class FakeMicrophone(MediaDevice):
    def __init__(self, acquire_error: Optional[CaptureError] = None):
        self.acquire_error = acquire_error
        self.acquired = False
        self.acquire_count = 0
        self.release_count = 0

    async def acquire(self) -> None:
        self.acquire_count += 1
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquired = True

    async def release(self) -> None:
        self.release_count += 1
        self.acquired = False


class FakeCamera(FakeMicrophone, CameraDevice):
    def __init__(
        self,
        frame: bytes = b"\xff\xd8\xff camera frame",
        mime_type: str = "image/jpeg",
        acquire_error: Optional[CaptureError] = None,
        capture_error: Optional[Exception] = None,
    ):
        super().__init__(acquire_error)
        self.frame = frame
        self.mime_type = mime_type
        self.capture_error = capture_error

    async def capture_frame(self) -> tuple[bytes, str]:
        if self.capture_error is not None:
            raise self.capture_error
        return self.frame, self.mime_type


class FakeRecognizer(SpeechRecognizer):
    """Records calls; ends by itself on stop() unless told to hang."""

    def __init__(self, end_on_stop: bool = True, fail_on_restart: Optional[CaptureError] = None):
        self.end_on_stop = end_on_stop
        self.fail_on_restart = fail_on_restart
        self.languages: list[str] = []
        self.listener: Optional[RecognitionListener] = None
        self.stop_count = 0
        self.abort_count = 0

    def start(self, language: str, listener: RecognitionListener) -> None:
        if self.languages and self.fail_on_restart is not None:
            raise self.fail_on_restart
        self.languages.append(language)
        self.listener = listener

    def stop(self) -> None:
        self.stop_count += 1
        if self.end_on_stop and self.listener is not None:
            self.listener.handle_end()

    def abort(self) -> None:
        self.abort_count += 1

    @property
    def start_count(self) -> int:
        return len(self.languages)


class FailingBlobStorage(BlobStorageInterface):
    async def upload(self, data: bytes, path: str, mime_type: str) -> str:
        raise UploadError("bucket unavailable")


class FailingTransactionStorage(TransactionStorageInterface):
    def __init__(self):
        self.attempts = 0

    async def save_transaction(self, transaction: CanonicalTransaction, user_id: str) -> str:
        self.attempts += 1
        raise StorageError("sheet unavailable")

    async def list_categories(self, user_id: str) -> list[Category]:
        raise StorageError("sheet unavailable")


# =============================================================================
# SAMPLE PAYLOADS
# =============================================================================

def transaction_payload(**overrides) -> dict:
    payload = {
        "type": "income",
        "amount": 1000,
        "description": "Sold 5 shirts to John",
        "category": "Sales",
        "customer": "John",
        "items": [{"name": "shirts", "quantity": 5, "price": 200}],
        "confidence": 0.9,
    }
    payload.update(overrides)
    return payload


def receipt_payload(**overrides) -> dict:
    payload = {
        "vendor": "CENTRAL MARKET",
        "date": "2024-03-14",
        "total": 1160,
        "items": [
            {"name": "Rice 10kg", "quantity": 1, "price": 500},
            {"name": "Beans 5kg", "quantity": 1, "price": 300},
            {"name": "Cooking Oil 2L", "quantity": 1, "price": 200},
        ],
        "category": "Food & Beverages",
        "confidence": 0.85,
        "currency": "KES",
    }
    payload.update(overrides)
    return payload


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def app_settings():
    """Settings with no retry backoff and short timeouts."""
    return AppSettings(
        extraction_timeout_seconds=0.2,
        extraction_retry_backoff_seconds=0,
        recognizer_stop_timeout_seconds=0.1,
        max_recognizer_restarts=3,
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def engine(provider, app_settings):
    return ExtractionEngine(provider, app_settings)


@pytest.fixture
def transaction_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def blob_storage():
    return InMemoryBlobStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def ocr():
    return FakeOcr(text="CENTRAL MARKET\nTotal: KES 1160.00")


@pytest.fixture
def flow(engine, ocr, transaction_storage, blob_storage, audit_logger, app_settings):
    return TransactionCaptureFlow(
        engine=engine,
        ocr=ocr,
        transaction_storage=transaction_storage,
        blob_storage=blob_storage,
        audit_logger=audit_logger,
        settings=app_settings,
        clock=lambda: CAPTURED_AT,
    )


@pytest.fixture
def make_flow(engine, ocr, transaction_storage, blob_storage, audit_logger, app_settings):
    """Build a flow with some collaborators swapped out."""

    def _make(**overrides) -> TransactionCaptureFlow:
        kwargs = {
            "engine": engine,
            "ocr": ocr,
            "transaction_storage": transaction_storage,
            "blob_storage": blob_storage,
            "audit_logger": audit_logger,
            "settings": app_settings,
            "clock": lambda: CAPTURED_AT,
        }
        kwargs.update(overrides)
        return TransactionCaptureFlow(**kwargs)

    return _make


@pytest.fixture
def receipt_image():
    return RawImageInput(
        data=b"\x89PNG fake receipt bytes",
        mime_type="image/png",
        filename="receipt.png",
        captured_at=CAPTURED_AT,
    )


@pytest.fixture
def categorizer(provider, app_settings):
    return CategorySuggester(provider, app_settings)


def make_images(count: int) -> Sequence[RawImageInput]:
    return [
        RawImageInput(
            data=f"image-{i}".encode(),
            mime_type="image/jpeg",
            filename=f"receipt-{i}.jpg",
            captured_at=CAPTURED_AT,
        )
        for i in range(count)
    ]

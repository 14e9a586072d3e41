"""Tests for the extraction engine."""

import pytest

from conftest import SLOW, FakeProvider, receipt_payload, transaction_payload

from biashara_ledger.agents import ExtractionEngine, resolve_instruction_locale
from biashara_ledger.config import AppSettings
from biashara_ledger.errors import (
    EmptyInputError,
    ExtractionFailure,
    ExtractionFailureReason,
    ProviderNetworkError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from biashara_ledger.models import ReceiptExtraction, SchemaKind, TransactionExtraction
from biashara_ledger.services.llm import RECEIPT_RESPONSE_SCHEMA, TRANSACTION_RESPONSE_SCHEMA


class TestSchemaConformance:
    """A returned extraction always validates against its schema."""

    @pytest.mark.asyncio
    async def test_transaction_extraction(self, engine, provider):
        provider.queue(transaction_payload())

        result = await engine.extract(
            "Sold 5 shirts for 200 shillings each to John", SchemaKind.TRANSACTION, "en"
        )

        assert isinstance(result.data, TransactionExtraction)
        assert result.data.amount == 1000
        assert result.data.customer == "John"
        assert result.data.items[0].quantity == 5
        assert result.schema_kind == SchemaKind.TRANSACTION
        assert result.model_name == "fake-model"

    @pytest.mark.asyncio
    async def test_receipt_extraction(self, engine, provider):
        provider.queue(receipt_payload())

        result = await engine.extract("CENTRAL MARKET ... Total: KES 1160.00", "receipt", "en")

        assert isinstance(result.data, ReceiptExtraction)
        assert result.data.total == 1160
        assert provider.calls[0]["response_schema"] is RECEIPT_RESPONSE_SCHEMA

    @pytest.mark.asyncio
    async def test_transaction_uses_transaction_schema(self, engine, provider):
        provider.queue(transaction_payload())
        await engine.extract("sold maize", SchemaKind.TRANSACTION, "en")
        assert provider.calls[0]["response_schema"] is TRANSACTION_RESPONSE_SCHEMA

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        transaction_payload(confidence=1.4),
        {k: v for k, v in transaction_payload().items() if k != "confidence"},
        transaction_payload(type="refund"),
        transaction_payload(amount=-5),
        transaction_payload(items=[{"name": "shirts", "quantity": 0, "price": 200}]),
    ])
    async def test_invalid_payload_is_schema_mismatch(self, engine, provider, payload):
        provider.queue(payload)

        with pytest.raises(ExtractionFailure) as exc_info:
            await engine.extract("sold shirts", SchemaKind.TRANSACTION, "en")

        assert exc_info.value.reason == ExtractionFailureReason.SCHEMA_MISMATCH
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_non_json_answer_is_schema_mismatch(self, engine, provider):
        provider.queue("Sure! The transaction is an income of 1000.")

        with pytest.raises(ExtractionFailure) as exc_info:
            await engine.extract("sold shirts", SchemaKind.TRANSACTION, "en")

        assert exc_info.value.reason == ExtractionFailureReason.SCHEMA_MISMATCH

    @pytest.mark.asyncio
    async def test_nan_confidence_is_schema_mismatch(self, engine, provider):
        provider.queue(
            '{"type": "income", "amount": 10, "description": "Sale", "confidence": NaN}'
        )

        with pytest.raises(ExtractionFailure) as exc_info:
            await engine.extract("sale", SchemaKind.TRANSACTION, "en")

        assert exc_info.value.reason == ExtractionFailureReason.SCHEMA_MISMATCH


class TestEmptyInput:
    """Empty input never reaches the provider."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t  "])
    async def test_empty_input_short_circuits(self, engine, provider, text):
        with pytest.raises(EmptyInputError):
            await engine.extract(text, SchemaKind.TRANSACTION, "en")
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_none_text_is_empty(self, engine, provider):
        with pytest.raises(EmptyInputError):
            await engine.extract(None, SchemaKind.RECEIPT, "en")
        assert provider.calls == []


class TestLocales:
    @pytest.mark.parametrize("locale,expected", [
        ("en", "en"),
        ("sw", "sw"),
        ("SW", "sw"),
        ("sw-KE", "sw"),
        ("en_US", "en"),
        ("fr", "en"),
        ("", "en"),
    ])
    def test_resolve_instruction_locale(self, locale, expected):
        assert resolve_instruction_locale(locale) == expected

    @pytest.mark.asyncio
    async def test_swahili_prompts(self, engine, provider):
        provider.queue(transaction_payload())

        result = await engine.extract("Nimeuza mashati matano", SchemaKind.TRANSACTION, "sw")

        call = provider.calls[0]
        assert "Wewe ni msaidizi wa kifedha" in call["system_instruction"]
        assert "Nimeuza mashati matano" in call["user_prompt"]
        assert result.instruction_locale == "sw"

    @pytest.mark.asyncio
    async def test_unsupported_locale_uses_english_but_keeps_tag(self, engine, provider):
        provider.queue(transaction_payload())

        result = await engine.extract("J'ai vendu", SchemaKind.TRANSACTION, "fr")

        assert "You are a financial assistant" in provider.calls[0]["system_instruction"]
        assert result.locale == "fr"
        assert result.instruction_locale == "en"

    @pytest.mark.asyncio
    async def test_receipt_prompt_in_swahili(self, engine, provider):
        provider.queue(receipt_payload())
        await engine.extract("CENTRAL MARKET", SchemaKind.RECEIPT, "sw")
        assert "risiti" in provider.calls[0]["system_instruction"]


class TestProviderFailures:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("error,reason", [
        (ProviderNetworkError("offline"), ExtractionFailureReason.NETWORK),
        (ProviderTimeoutError("slow"), ExtractionFailureReason.TIMEOUT),
        (ProviderResponseError("blocked"), ExtractionFailureReason.PROVIDER),
        (RuntimeError("sdk bug"), ExtractionFailureReason.PROVIDER),
    ])
    async def test_provider_errors_are_classified(self, engine, provider, error, reason):
        provider.queue(error)

        with pytest.raises(ExtractionFailure) as exc_info:
            await engine.extract("sold maize", SchemaKind.TRANSACTION, "en")

        assert exc_info.value.reason == reason
        assert exc_info.value.cause is error

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self, engine, provider):
        provider.queue(SLOW)

        with pytest.raises(ExtractionFailure) as exc_info:
            await engine.extract("sold maize", SchemaKind.TRANSACTION, "en")

        assert exc_info.value.reason == ExtractionFailureReason.TIMEOUT
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_engine_does_not_retry(self, engine, provider):
        provider.queue(ProviderNetworkError("offline"), transaction_payload())

        with pytest.raises(ExtractionFailure):
            await engine.extract("sold maize", SchemaKind.TRANSACTION, "en")

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_passed_to_provider(self, engine, provider, app_settings):
        provider.queue(transaction_payload())
        await engine.extract("sold maize", SchemaKind.TRANSACTION, "en")
        assert provider.calls[0]["timeout_seconds"] == app_settings.extraction_timeout_seconds


class TestInputHandling:
    @pytest.mark.asyncio
    async def test_long_input_is_truncated(self):
        provider = FakeProvider(transaction_payload())
        engine = ExtractionEngine(provider, AppSettings(max_input_chars=100))

        result = await engine.extract("x" * 500, SchemaKind.TRANSACTION, "en")

        assert len(result.source_text) == 100

    @pytest.mark.asyncio
    async def test_input_is_trimmed(self, engine, provider):
        provider.queue(transaction_payload())
        result = await engine.extract("  sold maize  ", SchemaKind.TRANSACTION, "en")
        assert result.source_text == "sold maize"

    @pytest.mark.asyncio
    async def test_braces_in_text_are_kept(self, engine, provider):
        provider.queue(transaction_payload())
        await engine.extract("paid {rent}", SchemaKind.TRANSACTION, "en")
        assert "paid {rent}" in provider.calls[0]["user_prompt"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

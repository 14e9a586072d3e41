"""Tests for semantic extraction validation."""

from datetime import date

import pytest

from conftest import receipt_payload, transaction_payload

from biashara_ledger.config import AppSettings
from biashara_ledger.models import (
    ExtractionResult,
    ReceiptExtraction,
    SchemaKind,
    TransactionExtraction,
)
from biashara_ledger.validation import ExtractionValidator

TODAY = date(2024, 3, 15)


def _receipt(**overrides) -> ExtractionResult:
    return ExtractionResult(
        schema_kind=SchemaKind.RECEIPT,
        locale="en",
        instruction_locale="en",
        data=ReceiptExtraction(**receipt_payload(**overrides)),
    )


def _transaction(**overrides) -> ExtractionResult:
    return ExtractionResult(
        schema_kind=SchemaKind.TRANSACTION,
        locale="en",
        instruction_locale="en",
        data=TransactionExtraction(**transaction_payload(**overrides)),
    )


@pytest.fixture
def validator():
    return ExtractionValidator(AppSettings())


class TestAmountChecks:
    def test_valid_receipt_has_no_errors(self, validator):
        """Items 500 + 300 + 200 under a 1160 total is only a tax gap."""
        result = validator.validate(_receipt(), today=TODAY)

        assert not result.has_errors
        assert result.warnings == []
        assert [issue.severity for issue in result.issues] == ["info"]

    def test_zero_total_is_error(self, validator):
        result = validator.validate(_receipt(total=0, items=[]), today=TODAY)
        assert result.has_errors
        assert result.issues[0].field == "total"

    def test_zero_amount_is_error(self, validator):
        result = validator.validate(_transaction(amount=0, items=None), today=TODAY)
        assert result.error_count == 1
        assert result.issues[0].field == "amount"

    def test_absurd_amount_is_error(self, validator):
        result = validator.validate(_transaction(amount=500_000_000, items=None), today=TODAY)
        assert result.has_errors
        assert result.issues[0].issue_type == "suspicious_value"

    def test_limit_comes_from_settings(self):
        validator = ExtractionValidator(AppSettings(max_transaction_amount=500))
        result = validator.validate(_transaction(items=None), today=TODAY)
        assert result.has_errors


class TestReceiptChecks:
    def test_missing_vendor_is_warning(self, validator):
        result = validator.validate(_receipt(vendor="", items=[]), today=TODAY)
        assert not result.has_errors
        assert any("Vendor" in warning for warning in result.warnings)

    def test_unreadable_date_is_warning(self, validator):
        result = validator.validate(_receipt(date="14th March", items=[]), today=TODAY)
        assert [issue.issue_type for issue in result.issues] == ["invalid_format"]

    def test_future_date_is_warning(self, validator):
        result = validator.validate(_receipt(date="2024-04-30", items=[]), today=TODAY)
        assert [issue.issue_type for issue in result.issues] == ["future_date"]

    def test_tomorrow_is_tolerated(self, validator):
        result = validator.validate(_receipt(date="2024-03-16", items=[]), today=TODAY)
        assert result.issues == []


class TestItemsTotal:
    def test_line_totals_matching(self, validator):
        items = [
            {"name": "Pens", "quantity": 4, "price": 400},
            {"name": "Paper", "quantity": 1, "price": 528},
        ]
        result = validator.validate(_receipt(total=928, items=items), today=TODAY)
        assert result.issues == []

    def test_unit_prices_matching(self, validator):
        result = validator.validate(_transaction(), today=TODAY)
        assert result.issues == []

    def test_items_above_total_is_warning(self, validator):
        items = [{"name": "Rice", "quantity": 1, "price": 5000}]
        result = validator.validate(_receipt(total=1160, items=items), today=TODAY)
        assert result.warnings
        assert result.issues[0].field == "items"


class TestSummary:
    def test_summary_for_clean_result(self, validator):
        result = validator.validate(_transaction(), today=TODAY)
        summary = ExtractionValidator.get_user_friendly_summary(result)
        assert summary.startswith("All checks passed")

    def test_summary_lists_errors_and_warnings(self, validator):
        result = validator.validate(
            _receipt(total=0, vendor="", items=[]), today=TODAY
        )
        summary = ExtractionValidator.get_user_friendly_summary(result)
        assert "need fixing" in summary
        assert "Please verify the following" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

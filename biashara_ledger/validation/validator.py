"""
Semantic Extraction Validation

DESIGN DECISION: Schema validation already happened inside the
extraction engine (pydantic). What is left here are the checks a
schema cannot express:
- Zero or absurd amounts
- Receipt dates in the future or unreadable
- Line items that don't add up to the total
- Receipts without a vendor

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review. Errors demote an otherwise
accepted extraction to review; warnings are shown alongside it.
"""

from datetime import date, timedelta
from typing import Optional

from biashara_ledger.config import AppSettings, get_settings
from biashara_ledger.models.transaction import (
    ExtractionResult,
    ReceiptExtraction,
    TransactionExtraction,
    ValidationIssue,
    ValidationResult,
)


class ExtractionValidator:
    """Semantic checks on a schema-valid extraction."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _check_amount(self, field: str, amount: float) -> list[ValidationIssue]:
        issues = []

        if amount <= 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Check if the amount was heard or read correctly",
            ))
        elif amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="error",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def _check_items_total(
        self,
        items,
        total: float,
    ) -> list[ValidationIssue]:
        if not items or total <= 0:
            return []

        # Receipts print either unit prices or line totals; accept both readings
        as_line_totals = sum(item.price for item in items)
        as_unit_prices = sum(item.price * item.quantity for item in items)
        tolerance = total * self._settings.items_total_tolerance

        if min(abs(as_line_totals - total), abs(as_unit_prices - total)) <= tolerance:
            return []

        # Tax is often printed below the items, so a total above the item sum is only info
        if as_line_totals < total and as_unit_prices < total:
            severity = "info"
        else:
            severity = "warning"

        return [ValidationIssue(
            field="items",
            issue_type="inconsistent",
            message=(
                f"Items add up to {as_line_totals:,.2f}, "
                f"which doesn't match the total ({total:,.2f})"
            ),
            severity=severity,
            suggested_fix="Please verify the items and the total",
        )]

    def _check_receipt(
        self,
        data: ReceiptExtraction,
        today: date,
    ) -> list[ValidationIssue]:
        issues = self._check_amount("total", data.total)

        if not data.vendor:
            issues.append(ValidationIssue(
                field="vendor",
                issue_type="missing",
                message="Vendor name could not be read from the receipt",
                severity="warning",
                suggested_fix="You'll need to enter the vendor name manually",
            ))

        if data.date:
            try:
                receipt_date = date.fromisoformat(data.date)
            except ValueError:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=f"Receipt date ({data.date}) could not be read",
                    severity="warning",
                    suggested_fix="The capture date will be used unless you correct it",
                ))
            else:
                max_future = today + timedelta(days=self._settings.future_date_tolerance_days)
                if receipt_date > max_future:
                    issues.append(ValidationIssue(
                        field="date",
                        issue_type="future_date",
                        message=f"Receipt date ({receipt_date}) is in the future",
                        severity="warning",
                        suggested_fix="Please verify the date is correct",
                    ))

        issues.extend(self._check_items_total(data.items, data.total))
        return issues

    def _check_transaction(self, data: TransactionExtraction) -> list[ValidationIssue]:
        issues = self._check_amount("amount", data.amount)
        if data.items:
            issues.extend(self._check_items_total(data.items, data.amount))
        return issues

    def validate(
        self,
        result: ExtractionResult,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run semantic checks.

        Args:
            result: A schema-valid extraction
            today: Reference date for future-date checks (defaults to today)
        """
        today = today or date.today()
        data = result.data

        if isinstance(data, ReceiptExtraction):
            issues = self._check_receipt(data, today)
        else:
            issues = self._check_transaction(data)

        return ValidationResult(
            extraction_id=result.extraction_id,
            issues=issues,
        )

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """Short summary for non-technical users."""
        if not result.issues:
            return "All checks passed. Please review the details below."

        lines = []
        if result.has_errors:
            lines.append("Some details need fixing before this can be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"  - {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"    {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines)

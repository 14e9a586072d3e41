"""
Transaction Normalizer

Maps a validated extraction plus its source context onto the single
CanonicalTransaction shape.

GUARANTEES:
- Pure: same (extraction, context) in, equal transaction out
- Receipts are always expenses, described as "Purchase from <vendor>"
  (or "Receipt purchase" when the vendor is blank)
- A receipt URL only ever comes from the context, never from the model
- Anything that cannot form a valid transaction raises NormalizationError
"""

from datetime import date
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from biashara_ledger.errors import NormalizationError
from biashara_ledger.models.transaction import (
    FALLBACK_CATEGORY,
    CanonicalTransaction,
    Category,
    ExtractionResult,
    ReceiptExtraction,
    SchemaKind,
    SourceContext,
    TransactionExtraction,
    TransactionItem,
    TransactionType,
)


def resolve_category(
    proposed: Optional[str],
    transaction_type: TransactionType,
    context: SourceContext,
) -> str:
    """
    Pick the category name to store.

    A category the extraction named is always kept, in the user's
    spelling when it matches one of their categories. Only when the
    extraction named none does the context suggestion apply, and
    after that the type's catch-all category.
    """
    if proposed and proposed.strip():
        match = _match_category(proposed, transaction_type, context.categories)
        return match or proposed.strip()
    if context.suggested_category:
        return context.suggested_category
    return FALLBACK_CATEGORY[transaction_type]


def _match_category(
    proposed: str,
    transaction_type: TransactionType,
    categories: Sequence[Category],
) -> Optional[str]:
    wanted = proposed.strip().casefold()
    for category in categories:
        if category.applies_to(transaction_type) and category.name.casefold() == wanted:
            return category.name
    return None


def _receipt_date(raw: Optional[str], context: SourceContext) -> date:
    if raw:
        try:
            return date.fromisoformat(raw.strip())
        except ValueError:
            pass
    return context.captured_at.date()


def _receipt_description(vendor: str) -> str:
    if vendor and vendor.strip():
        return f"Purchase from {vendor.strip()}"
    return "Receipt purchase"


def _from_transaction(data: TransactionExtraction, context: SourceContext) -> dict[str, Any]:
    return {
        "type": data.type,
        "amount": data.amount,
        "description": data.description,
        "category": resolve_category(data.category, data.type, context),
        "vendor": data.vendor,
        "customer": data.customer,
        "date": context.captured_at.date(),
        "items": list(data.items) if data.items else None,
        "receipt_url": context.receipt_url,
        "notes": data.notes,
        "currency": None,
        "source": context.source,
    }


def _from_receipt(data: ReceiptExtraction, context: SourceContext) -> dict[str, Any]:
    items = [
        TransactionItem(name=item.name, quantity=item.quantity, price=item.price)
        for item in data.items
    ]
    return {
        "type": TransactionType.EXPENSE,
        "amount": data.total,
        "description": _receipt_description(data.vendor),
        "category": resolve_category(data.category, TransactionType.EXPENSE, context),
        "vendor": data.vendor.strip() or None,
        "customer": None,
        "date": _receipt_date(data.date, context),
        "items": items or None,
        "receipt_url": context.receipt_url,
        "notes": None,
        "currency": data.currency,
        "source": context.source,
    }


def draft_fields(
    result: ExtractionResult,
    schema_kind: SchemaKind,
    context: SourceContext,
) -> dict[str, Any]:
    """
    The canonical field mapping before validation.

    Used for review screens where the user corrects what the
    extraction got wrong before saving.
    """
    schema_kind = SchemaKind(schema_kind)
    data = result.data

    if schema_kind == SchemaKind.RECEIPT:
        if not isinstance(data, ReceiptExtraction):
            raise NormalizationError("Expected a receipt extraction")
        fields = _from_receipt(data, context)
    else:
        if not isinstance(data, TransactionExtraction):
            raise NormalizationError("Expected a transaction extraction")
        fields = _from_transaction(data, context)

    fields["extraction_id"] = result.extraction_id
    return fields


def build_transaction(fields: dict[str, Any]) -> CanonicalTransaction:
    """
    Validate canonical fields into a transaction.

    Raises:
        NormalizationError: If the fields cannot form a valid transaction
    """
    amount = fields.get("amount")
    if isinstance(amount, (int, float)) and amount <= 0:
        raise NormalizationError(f"Amount must be greater than zero, got {amount}")
    try:
        return CanonicalTransaction.model_validate(fields)
    except ValidationError as e:
        raise NormalizationError(f"Invalid transaction fields: {e}") from e


def normalize(
    result: ExtractionResult,
    schema_kind: SchemaKind,
    context: SourceContext,
) -> CanonicalTransaction:
    """
    Turn an extraction into a canonical transaction.

    Raises:
        NormalizationError: If the extraction does not match schema_kind
            or the amount is not positive
    """
    return build_transaction(draft_fields(result, schema_kind, context))

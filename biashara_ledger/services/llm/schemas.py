"""
Response schemas sent to the model.

These mirror the pydantic extraction models in
biashara_ledger.models.transaction. The model is asked to fill them,
and its answer is still validated against the pydantic models, so a
drift between the two shows up as a schema mismatch rather than bad data.
"""

from biashara_ledger.models.transaction import SchemaKind


_ITEM_FIELDS = {
    "name": {"type": "STRING"},
    "quantity": {"type": "NUMBER"},
    "price": {"type": "NUMBER"},
}

TRANSACTION_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "type": {
            "type": "STRING",
            "enum": ["income", "expense"],
            "description": "Whether this is money coming in (income) or going out (expense)",
        },
        "amount": {"type": "NUMBER", "description": "The monetary amount of the transaction"},
        "description": {"type": "STRING", "description": "A clear description of the transaction"},
        "category": {
            "type": "STRING",
            "nullable": True,
            "description": "The category this transaction belongs to (e.g., Sales, Transport)",
        },
        "vendor": {
            "type": "STRING",
            "nullable": True,
            "description": "The person, business or entity involved in the transaction",
        },
        "customer": {
            "type": "STRING",
            "nullable": True,
            "description": "The customer name if this is a sale",
        },
        "items": {
            "type": "ARRAY",
            "nullable": True,
            "items": {
                "type": "OBJECT",
                "properties": _ITEM_FIELDS,
                "required": ["name", "quantity", "price"],
            },
        },
        "confidence": {
            "type": "NUMBER",
            "description": "Confidence level of the extraction between 0 and 1",
        },
        "notes": {"type": "STRING", "nullable": True},
    },
    "required": ["type", "amount", "description", "confidence"],
}

RECEIPT_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "vendor": {"type": "STRING", "description": "The business or vendor name"},
        "date": {
            "type": "STRING",
            "nullable": True,
            "description": "The date of the transaction in YYYY-MM-DD format",
        },
        "total": {"type": "NUMBER", "description": "The total amount on the receipt"},
        "items": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": _ITEM_FIELDS,
                "required": ["name", "price"],
            },
        },
        "category": {
            "type": "STRING",
            "description": "Suggested category for this type of purchase",
        },
        "confidence": {
            "type": "NUMBER",
            "description": "Confidence level of the OCR extraction between 0 and 1",
        },
        "currency": {"type": "STRING", "nullable": True},
    },
    "required": ["vendor", "total", "items", "category", "confidence"],
}

CATEGORY_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "category": {
            "type": "STRING",
            "description": "The most appropriate category from the list",
        },
    },
    "required": ["category"],
}

RESPONSE_SCHEMAS: dict[SchemaKind, dict] = {
    SchemaKind.TRANSACTION: TRANSACTION_RESPONSE_SCHEMA,
    SchemaKind.RECEIPT: RECEIPT_RESPONSE_SCHEMA,
}

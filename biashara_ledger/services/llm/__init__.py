"""Language-model provider package."""

from biashara_ledger.services.llm.gemini_provider import GeminiProvider
from biashara_ledger.services.llm.provider import LanguageModelProvider
from biashara_ledger.services.llm.schemas import (
    CATEGORY_RESPONSE_SCHEMA,
    RECEIPT_RESPONSE_SCHEMA,
    RESPONSE_SCHEMAS,
    TRANSACTION_RESPONSE_SCHEMA,
)

__all__ = [
    "CATEGORY_RESPONSE_SCHEMA",
    "GeminiProvider",
    "LanguageModelProvider",
    "RECEIPT_RESPONSE_SCHEMA",
    "RESPONSE_SCHEMAS",
    "TRANSACTION_RESPONSE_SCHEMA",
]

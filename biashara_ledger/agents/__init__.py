"""
Model-backed agents: extraction and category suggestion.
"""

from biashara_ledger.agents.categorizer import CategorySuggester, CategorySuggestion
from biashara_ledger.agents.extraction_engine import ExtractionEngine
from biashara_ledger.agents.prompts import SUPPORTED_LOCALES, resolve_instruction_locale

__all__ = [
    "CategorySuggester",
    "CategorySuggestion",
    "ExtractionEngine",
    "SUPPORTED_LOCALES",
    "resolve_instruction_locale",
]

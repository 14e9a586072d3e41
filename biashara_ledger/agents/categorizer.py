"""
Category Suggester

Asks the model to pick the best category for a transaction that came
back without one.

BOUNDARIES:
- The answer MUST be one of the offered categories
- Any failure falls back to "Other Income" / "Other Expenses"
- The suggestion is never persisted on its own
"""

import asyncio
from typing import Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from biashara_ledger.agents.prompts import (
    CATEGORY_SYSTEM_PROMPTS,
    CATEGORY_USER_PROMPT,
    resolve_instruction_locale,
)
from biashara_ledger.config import AppSettings, get_settings
from biashara_ledger.models.transaction import (
    DEFAULT_CATEGORIES,
    FALLBACK_CATEGORY,
    Category,
    TransactionType,
)
from biashara_ledger.services.llm.provider import LanguageModelProvider
from biashara_ledger.services.llm.schemas import CATEGORY_RESPONSE_SCHEMA

logger = structlog.get_logger(__name__)


class CategorySuggestion(BaseModel):
    """The model's answer."""
    category: str = Field(..., min_length=1)


class CategorySuggester:
    """Suggests a category from the user's list for one transaction."""

    def __init__(
        self,
        provider: LanguageModelProvider,
        settings: Optional[AppSettings] = None,
    ):
        self._provider = provider
        self._settings = settings or get_settings().app

    @staticmethod
    def candidate_names(
        transaction_type: TransactionType,
        categories: Optional[Sequence[Category]] = None,
    ) -> list[str]:
        """Category names applicable to the type, defaults when the user has none."""
        names = []
        for category in categories or ():
            if category.applies_to(transaction_type) and category.name not in names:
                names.append(category.name)
        return names or list(DEFAULT_CATEGORIES[transaction_type])

    async def suggest(
        self,
        description: str,
        transaction_type: TransactionType,
        locale: str = "en",
        categories: Optional[Sequence[Category]] = None,
    ) -> str:
        transaction_type = TransactionType(transaction_type)
        fallback = FALLBACK_CATEGORY[transaction_type]
        names = self.candidate_names(transaction_type, categories)
        instruction_locale = resolve_instruction_locale(locale)

        user_prompt = CATEGORY_USER_PROMPT.format(
            description=description,
            type=transaction_type.value,
            categories=", ".join(names),
        )

        timeout = self._settings.extraction_timeout_seconds
        try:
            raw = await asyncio.wait_for(
                self._provider.generate_structured(
                    system_instruction=CATEGORY_SYSTEM_PROMPTS[instruction_locale],
                    user_prompt=user_prompt,
                    response_schema=CATEGORY_RESPONSE_SCHEMA,
                    timeout_seconds=timeout,
                ),
                timeout=timeout,
            )
            suggestion = CategorySuggestion.model_validate_json(raw)
        except Exception as e:
            logger.info("category_suggestion_failed", error=str(e), fallback=fallback)
            return fallback

        wanted = suggestion.category.strip().casefold()
        for name in names:
            if name.casefold() == wanted:
                return name

        logger.info(
            "category_suggestion_outside_list",
            suggested=suggestion.category,
            fallback=fallback,
        )
        return fallback

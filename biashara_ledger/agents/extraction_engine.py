"""
Extraction Engine

Turns free text (a voice transcript, a typed note or OCR output) into a
typed, validated extraction.

CRITICAL BOUNDARIES:
- CAN: Call the language model once per extract() call
- CANNOT: Return a partial or unvalidated object
- CANNOT: Retry on its own (the caller decides)
- CANNOT: Call the model for empty input

The model is a TRANSLATOR, not an ORACLE. Whatever it answers is
validated against the pydantic schema before anyone else sees it.
"""

import asyncio
from typing import Optional

import structlog
from pydantic import ValidationError

from biashara_ledger.agents.prompts import (
    RECEIPT_SYSTEM_PROMPTS,
    RECEIPT_USER_PROMPTS,
    TRANSACTION_SYSTEM_PROMPTS,
    TRANSACTION_USER_PROMPTS,
    resolve_instruction_locale,
)
from biashara_ledger.config import AppSettings, get_settings
from biashara_ledger.errors import (
    EmptyInputError,
    ExtractionFailure,
    ExtractionFailureReason,
    ProviderError,
    ProviderNetworkError,
    ProviderTimeoutError,
)
from biashara_ledger.models.transaction import SCHEMA_MODELS, ExtractionResult, SchemaKind
from biashara_ledger.services.llm.provider import LanguageModelProvider
from biashara_ledger.services.llm.schemas import RESPONSE_SCHEMAS

logger = structlog.get_logger(__name__)

_PROMPTS = {
    SchemaKind.TRANSACTION: (TRANSACTION_SYSTEM_PROMPTS, TRANSACTION_USER_PROMPTS),
    SchemaKind.RECEIPT: (RECEIPT_SYSTEM_PROMPTS, RECEIPT_USER_PROMPTS),
}


class ExtractionEngine:
    """Schema-constrained extraction over a language-model provider."""

    def __init__(
        self,
        provider: LanguageModelProvider,
        settings: Optional[AppSettings] = None,
    ):
        self._provider = provider
        self._settings = settings or get_settings().app

    @property
    def timeout_seconds(self) -> float:
        return self._settings.extraction_timeout_seconds

    def build_prompts(self, text: str, schema_kind: SchemaKind, instruction_locale: str) -> tuple[str, str]:
        """Return (system_instruction, user_prompt) for one call."""
        system_prompts, user_prompts = _PROMPTS[schema_kind]
        return (
            system_prompts[instruction_locale],
            user_prompts[instruction_locale].format(text=text),
        )

    async def extract(
        self,
        text: str,
        schema_kind: SchemaKind,
        locale: str,
    ) -> ExtractionResult:
        """
        Extract one transaction or receipt from text.

        Args:
            text: Transcript, typed description or OCR text
            schema_kind: Which schema the answer must conform to
            locale: Caller's locale tag, passed explicitly

        Returns:
            ExtractionResult wrapping a schema-valid object

        Raises:
            EmptyInputError: If text is empty after trimming
            ExtractionFailure: If no schema-valid object was produced
        """
        schema_kind = SchemaKind(schema_kind)
        cleaned = (text or "").strip()
        if not cleaned:
            raise EmptyInputError("Nothing to extract from")

        if len(cleaned) > self._settings.max_input_chars:
            logger.info(
                "extraction_input_truncated",
                original_length=len(cleaned),
                max_chars=self._settings.max_input_chars,
            )
            cleaned = cleaned[: self._settings.max_input_chars]

        instruction_locale = resolve_instruction_locale(locale)
        system_instruction, user_prompt = self.build_prompts(cleaned, schema_kind, instruction_locale)

        raw = await self._call_provider(system_instruction, user_prompt, schema_kind)

        model_cls = SCHEMA_MODELS[schema_kind]
        try:
            data = model_cls.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "extraction_schema_mismatch",
                schema_kind=schema_kind.value,
                errors=e.error_count(),
            )
            raise ExtractionFailure(
                ExtractionFailureReason.SCHEMA_MISMATCH,
                f"Model answer does not match the {schema_kind.value} schema",
                cause=e,
            ) from e

        return ExtractionResult(
            schema_kind=schema_kind,
            locale=locale,
            instruction_locale=instruction_locale,
            data=data,
            model_name=self._provider.model_name,
            source_text=cleaned,
        )

    async def _call_provider(
        self,
        system_instruction: str,
        user_prompt: str,
        schema_kind: SchemaKind,
    ) -> str:
        timeout = self.timeout_seconds
        try:
            return await asyncio.wait_for(
                self._provider.generate_structured(
                    system_instruction=system_instruction,
                    user_prompt=user_prompt,
                    response_schema=RESPONSE_SCHEMAS[schema_kind],
                    timeout_seconds=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, ProviderTimeoutError) as e:
            raise ExtractionFailure(
                ExtractionFailureReason.TIMEOUT,
                f"No answer within {timeout}s",
                cause=e,
            ) from e
        except ProviderNetworkError as e:
            raise ExtractionFailure(ExtractionFailureReason.NETWORK, str(e), cause=e) from e
        except ProviderError as e:
            raise ExtractionFailure(ExtractionFailureReason.PROVIDER, str(e), cause=e) from e
        except Exception as e:
            logger.error("extraction_provider_crashed", error=str(e), error_type=type(e).__name__)
            raise ExtractionFailure(ExtractionFailureReason.PROVIDER, str(e), cause=e) from e

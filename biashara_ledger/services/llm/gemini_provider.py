"""
Gemini Provider

DESIGN DECISION: We use Gemini structured output (JSON mime type plus a
response schema) instead of asking for JSON in the prompt because:
1. The model cannot wrap the answer in prose
2. Field names and enum values are constrained at generation time
3. The pydantic models still get the final say

The provider does NOT retry. Whether a failed extraction is worth a
second attempt is the caller's decision.
"""

import asyncio
from typing import Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import BlockedPromptException, StopCandidateException

from biashara_ledger.config import GeminiSettings, get_settings
from biashara_ledger.errors import (
    ProviderNetworkError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from biashara_ledger.services.llm.provider import LanguageModelProvider

logger = structlog.get_logger(__name__)


class GeminiProvider(LanguageModelProvider):
    """
    Structured generation backed by Google Gemini.

    A GenerativeModel is built per call because the system instruction
    is bound at model construction and differs per locale.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self.model_name = self._settings.model_name
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    def _build_model(self, system_instruction: str, response_schema: dict):
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=system_instruction,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
                "response_schema": response_schema,
            },
        )

    async def generate_structured(
        self,
        system_instruction: str,
        user_prompt: str,
        response_schema: dict,
        timeout_seconds: float,
    ) -> str:
        model = self._build_model(system_instruction, response_schema)

        try:
            response = await asyncio.wait_for(
                model.generate_content_async(
                    user_prompt,
                    request_options={"timeout": timeout_seconds},
                ),
                timeout=timeout_seconds,
            )
            text = response.text
        except (asyncio.TimeoutError, google_exceptions.DeadlineExceeded) as e:
            logger.warning("gemini_timeout", model=self.model_name, timeout=timeout_seconds)
            raise ProviderTimeoutError(f"Gemini did not answer within {timeout_seconds}s") from e
        except (
            google_exceptions.ServiceUnavailable,
            google_exceptions.RetryError,
            ConnectionError,
            OSError,
        ) as e:
            logger.warning("gemini_unreachable", model=self.model_name, error=str(e))
            raise ProviderNetworkError(f"Could not reach Gemini: {e}") from e
        except (BlockedPromptException, StopCandidateException) as e:
            logger.warning("gemini_blocked", model=self.model_name, error=str(e))
            raise ProviderResponseError(f"Gemini refused the request: {e}") from e
        except google_exceptions.GoogleAPICallError as e:
            logger.warning("gemini_api_error", model=self.model_name, error=str(e))
            raise ProviderResponseError(f"Gemini API error: {e}") from e
        except ValueError as e:
            # response.text raises when the candidate carries no parts
            raise ProviderResponseError(f"Gemini returned no content: {e}") from e

        logger.debug("gemini_response", model=self.model_name, length=len(text))
        return text

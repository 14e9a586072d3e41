"""
Language-Model Provider Contract

The extraction engine talks to exactly one method on a provider:
structured generation against a response schema. Vendor SDK errors
never cross this boundary; implementations translate them into the
ProviderError family so the engine can classify failures.
"""

from abc import ABC, abstractmethod


class LanguageModelProvider(ABC):
    """Schema-constrained text generation."""

    model_name: str = "unknown"

    @abstractmethod
    async def generate_structured(
        self,
        system_instruction: str,
        user_prompt: str,
        response_schema: dict,
        timeout_seconds: float,
    ) -> str:
        """
        Generate a JSON document conforming to response_schema.

        Returns:
            The raw JSON text produced by the model

        Raises:
            ProviderNetworkError: The provider could not be reached
            ProviderTimeoutError: No answer within timeout_seconds
            ProviderResponseError: The provider refused or errored
        """
        pass

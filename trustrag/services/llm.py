"""OpenAI completion service."""

from typing import Optional

from openai import AsyncOpenAI

from trustrag.core.config import settings
from trustrag.core.exceptions import GenerationProviderError


class LLMService:
    """Service for generating completions with OpenAI chat models."""

    def __init__(self, client: Optional[AsyncOpenAI] = None) -> None:
        """Initialize the LLM service."""
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = settings.llm_model
        self.max_tokens = settings.llm_max_tokens
        self.temperature = settings.llm_temperature

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Generate a completion.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: Request including retrieved sources.

        Returns:
            Generated text.

        Raises:
            GenerationProviderError: If the provider fails or returns nothing.
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            raise GenerationProviderError(
                f"Failed to generate response: {str(e)}") from e

        if not response.choices:
            raise GenerationProviderError("Empty response from LLM")

        choice = response.choices[0]
        content = choice.message.content
        if not content or not content.strip():
            raise GenerationProviderError("Empty response from LLM")
        if choice.finish_reason == "content_filter":
            raise GenerationProviderError("Response withheld by content filter")
        return content

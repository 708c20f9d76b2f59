"""Gemini AI client used by the content classifier."""

from functools import lru_cache

from google import genai
from google.genai import types

from src.core.config import settings
from src.core.exception import ClassifierError
from src.core.logging import get_logger

logger = get_logger(__name__)


class GeminiClient:
    """Thin async wrapper around the google-genai client."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self.client = genai.Client(api_key=api_key or settings.GOOGLE_API_KEY)
        self.model = model or settings.GEMINI_MODEL_LOW
        logger.info(f"Gemini client initialized (model: {self.model})")

    async def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
        response_mime_type: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> str:
        """
        Generate content with the configured Gemini model.

        Args:
            prompt: The user content to send
            system_instruction: Optional fixed instruction prompt
            response_mime_type: e.g. "application/json" for structured answers
            temperature: Sampling temperature
            max_output_tokens: Output token cap

        Returns:
            Generated text response

        Raises:
            ClassifierError: If the Gemini API call fails or returns no text
        """
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type=response_mime_type,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            candidate_count=1,
        )

        try:
            logger.debug(f"Calling Gemini API (model: {self.model})")
            response = await self.client.aio.models.generate_content(
                model=self.model, contents=prompt, config=config
            )
        except Exception as e:
            raise ClassifierError(f"Gemini API error (model: {self.model}): {e}") from e

        if not response:
            raise ClassifierError("No response received from Gemini API")

        # The SDK can return response objects with errors embedded instead of text
        try:
            text = response.text
        except (AttributeError, ValueError) as e:
            raise ClassifierError(f"Invalid Gemini API response structure: {e}") from e

        if not text:
            raise ClassifierError("Empty response text from Gemini API")

        logger.debug(f"Gemini API response received (length: {len(text)})")
        return text.strip()


@lru_cache(maxsize=1)
def get_gemini_client() -> GeminiClient:
    """Get singleton Gemini client instance."""
    return GeminiClient()

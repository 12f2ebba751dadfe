"""Async Gemini client for short JSON-mode judgement calls."""

from typing import Any, Optional

import google.generativeai as genai
from google.generativeai.types.generation_types import BlockedPromptException

from raiinmaker_verification.config.logging import get_logger

logger = get_logger("llm.gemini")


class GeminiClient:
    """
    Google Gemini API client returning raw JSON text.

    No retries here: the only caller (the content pre-check) has its own
    failure policy and must not hold up the human-verification path.

    Attributes:
        model_name: Gemini model identifier
        model: Configured GenerativeModel instance
    """

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = "gemini-1.5-flash",
        genai_module: Any = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Gemini API key
            model_name: Model identifier
            genai_module: Injected google.generativeai-compatible module

        Raises:
            ValueError: If the API key is missing
        """
        if not api_key:
            raise ValueError("GEMINI_API_KEY not configured")

        self._genai = genai_module or genai
        self._genai.configure(api_key=api_key)
        self.model_name = model_name
        self.model = self._genai.GenerativeModel(model_name)

        logger.info(f"Gemini client initialized with model {model_name}")

    async def generate_json(self, prompt: str, temperature: float = 0.1) -> str:
        """
        Generate a JSON response.

        Args:
            prompt: Full prompt text
            temperature: Sampling temperature; low keeps rule checks consistent

        Returns:
            Response text (expected to be a JSON document)

        Raises:
            BlockedPromptException: If the prompt violates safety policies
        """
        try:
            response = await self.model.generate_content_async(
                prompt,
                generation_config=self._genai.types.GenerationConfig(
                    temperature=temperature,
                    response_mime_type="application/json",
                ),
            )
            return response.text
        except BlockedPromptException as e:
            logger.error(f"Prompt blocked by safety filters: {e}")
            raise

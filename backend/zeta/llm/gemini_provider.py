"""
Google Gemini LLM Provider

Implementation using Google's Generative AI SDK.
"""
from typing import Optional
import logging

import google.generativeai as genai
from tenacity import retry, stop_after_attempt, wait_exponential

from .base import LLMProvider, LLMError, LLMRateLimitError
from ..config import settings

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """
    Google Gemini API implementation.

    model supports in config.py
    """

    def __init__(self):
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required for Gemini provider")
        genai.configure(api_key=settings.gemini_api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def generate_text(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """Generate text using Gemini Generative API."""
        try:
            gen_model = genai.GenerativeModel(
                model_name=model,
                system_instruction=system_prompt or None,
            )

            generation_config = genai.GenerationConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
                response_mime_type="application/json" if json_mode else "text/plain",
            )

            response = await gen_model.generate_content_async(
                prompt,
                generation_config=generation_config,
            )

            return response.text or ""

        except Exception as e:
            error_str = str(e).lower()
            if "quota" in error_str or "rate" in error_str:
                raise LLMRateLimitError(f"Gemini rate limit: {e}")
            raise LLMError(f"Gemini error: {e}")

"""
LLM Provider Base Class

Abstract interface that all chat-completion providers must implement.
Includes strict-JSON helpers and error types.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional
import json
import logging

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM errors."""
    pass


class LLMRateLimitError(LLMError):
    """Rate limit exceeded."""
    pass


class LLMInvalidResponseError(LLMError):
    """Invalid response from LLM."""
    pass


def parse_json_object(raw: Optional[str]) -> dict[str, Any]:
    """
    Parse a model response as a JSON object.

    Markdown code fences are stripped. Anything that is not a JSON object
    (malformed text, arrays, scalars) comes back as an empty dict.
    """
    if not raw:
        return {}

    cleaned = raw.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    cleaned = cleaned.strip()

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Discarding malformed JSON response: {e}")
        return {}

    if not isinstance(parsed, dict):
        logger.warning(f"Expected a JSON object, got {type(parsed).__name__}")
        return {}
    return parsed


class LLMProvider(ABC):
    """
    Abstract base class for chat-completion providers.

    All LLM calls go through this interface, allowing
    provider switching without changing system logic.
    """

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Generate text from a prompt.

        Args:
            prompt: The user prompt
            model: Model name to use
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            system_prompt: Optional system prompt
            json_mode: Ask the provider for a strict JSON object response

        Returns:
            Generated text
        """
        pass

    async def generate_json(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 1024,
        temperature: float = 0.0,
        system_prompt: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Request a strict JSON object and parse it defensively.

        Provider errors propagate as LLMError; a malformed body does not
        raise and yields {}.
        """
        response = await self.generate_text(
            prompt=prompt,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system_prompt=system_prompt,
            json_mode=True,
        )
        return parse_json_object(response)

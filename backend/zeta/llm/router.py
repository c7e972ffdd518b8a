"""
LLM Router

Model tier routing and provider factory.
Decides which model to use based on the task.
"""
from enum import Enum
from typing import Optional
import logging

from .base import LLMProvider
from ..config import settings

logger = logging.getLogger(__name__)


class ModelTier(str, Enum):
    """Model tiers based on cost and capability."""
    CHEAP = "cheap"   # Onboarding extraction
    MID = "mid"       # Assistant replies
    HEAVY = "heavy"   # Long-form planning


# Singleton provider instance
_provider_instance: Optional[LLMProvider] = None


def get_llm_provider() -> LLMProvider:
    """
    Get or create the LLM provider instance.

    Provider is selected based on LLM_PROVIDER environment variable.
    Uses singleton pattern to reuse connections.
    """
    global _provider_instance

    if _provider_instance is None:
        settings.validate_provider_key()

        if settings.llm_provider == "openai":
            from .openai_provider import OpenAIProvider
            logger.info("Initializing OpenAI provider")
            _provider_instance = OpenAIProvider()
        elif settings.llm_provider == "gemini":
            from .gemini_provider import GeminiProvider
            logger.info("Initializing Gemini provider")
            _provider_instance = GeminiProvider()
        else:
            raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")

    return _provider_instance


def set_llm_provider(provider: Optional[LLMProvider]) -> None:
    """Install a provider instance (or clear it with None)."""
    global _provider_instance
    _provider_instance = provider


def get_model_for_tier(tier: ModelTier) -> str:
    """
    Get the model name for a given tier.

    Uses configured models based on provider.
    """
    return settings.get_model(tier.value)


# Task to tier mapping
TASK_TIERS = {
    "onboarding_extraction": ModelTier.CHEAP,
    "standard_response": ModelTier.MID,
    "planning": ModelTier.HEAVY,
}


def get_tier_for_task(task: str) -> ModelTier:
    """Get the appropriate tier for a given task."""
    return TASK_TIERS.get(task, ModelTier.MID)


def get_model_for_task(task: str) -> str:
    """Get the model name for a given task."""
    tier = get_tier_for_task(task)
    return get_model_for_tier(tier)

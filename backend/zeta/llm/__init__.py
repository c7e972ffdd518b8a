# LLM Providers
from .base import LLMProvider, LLMError, LLMRateLimitError, LLMInvalidResponseError, parse_json_object
from .router import (
    get_llm_provider,
    set_llm_provider,
    ModelTier,
    get_model_for_task,
)

__all__ = [
    "LLMProvider",
    "LLMError",
    "LLMRateLimitError",
    "LLMInvalidResponseError",
    "parse_json_object",
    "get_llm_provider",
    "set_llm_provider",
    "ModelTier",
    "get_model_for_task",
]

"""
Zeta Configuration

Environment-based configuration with fail-fast validation.
API keys are required and must not be hardcoded.
"""
from typing import Literal
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM Provider Selection
    llm_provider: Literal["openai", "gemini"] = "openai"

    # API Keys - Required based on provider
    openai_api_key: str = ""
    gemini_api_key: str = ""

    # Database
    database_url: str = "sqlite+aiosqlite:///./zeta.db"

    # Debug mode (verbose low-level logging)
    debug: bool = False

    # Follow-through mode (structured step-by-step execution tracing)
    follow_through: bool = False

    # Model configurations
    openai_heavy_model: str = "gpt-4o"
    openai_mid_model: str = "gpt-4o"
    openai_cheap_model: str = "gpt-4o-mini"

    gemini_heavy_model: str = "gemini-2.5-pro"
    gemini_mid_model: str = "gemini-2.5-flash"
    gemini_cheap_model: str = "gemini-2.0-flash"

    # Autonomy policy applied when a project has none stored
    default_autonomy_policy: Literal["off", "shadow", "ask", "auto"] = "auto"

    # Blob storage for generated files
    storage_backend: Literal["local", "supabase"] = "local"
    storage_dir: str = "./storage"
    storage_public_base_url: str = "http://localhost:8000/files"
    storage_bucket: str = "project-docs"
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("openai_api_key", "gemini_api_key", "supabase_service_role_key", mode="before")
    @classmethod
    def validate_not_placeholder(cls, v: str) -> str:
        """Ensure API keys are not placeholder values."""
        if v and "your-" in v.lower():
            return ""
        return v

    def validate_provider_key(self) -> None:
        """Validate that the required API key for the selected provider is set."""
        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ValueError(
                "OPENAI_API_KEY environment variable is required when LLM_PROVIDER=openai. "
                "Please set it in your .env file or environment."
            )
        if self.llm_provider == "gemini" and not self.gemini_api_key:
            raise ValueError(
                "GEMINI_API_KEY environment variable is required when LLM_PROVIDER=gemini. "
                "Please set it in your .env file or environment."
            )

    def validate_storage(self) -> None:
        """Validate that the selected blob storage backend is usable."""
        if self.storage_backend == "supabase" and not (
            self.supabase_url and self.supabase_service_role_key
        ):
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required when STORAGE_BACKEND=supabase."
            )

    def get_model(self, tier: Literal["cheap", "mid", "heavy"]) -> str:
        """Get the model name for the specified tier and current provider."""
        if self.llm_provider == "openai":
            return {
                "cheap": self.openai_cheap_model,
                "mid": self.openai_mid_model,
                "heavy": self.openai_heavy_model,
            }[tier]
        else:
            return {
                "cheap": self.gemini_cheap_model,
                "mid": self.gemini_mid_model,
                "heavy": self.gemini_heavy_model,
            }[tier]


# Global settings instance
settings = Settings()

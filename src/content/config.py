"""Configuration settings for the AI content generator.

Provides settings for the LLM provider, token pricing and content length
targets. Every field can be overridden via GENERATOR_* environment variables.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ModelPricing(BaseModel):
    """Per-million-token prices in USD for one model."""

    input_cost_per_1m: float = Field(ge=0)
    output_cost_per_1m: float = Field(ge=0)


DEFAULT_PRICING: dict[str, ModelPricing] = {
    "gpt-4o-2024-08-06": ModelPricing(input_cost_per_1m=2.50, output_cost_per_1m=10.00),
    "gpt-4o": ModelPricing(input_cost_per_1m=2.50, output_cost_per_1m=10.00),
    "gpt-4o-mini": ModelPricing(input_cost_per_1m=0.15, output_cost_per_1m=0.60),
}


class ContentConfig(BaseSettings):
    """Configuration for AI content generation.

    Example: GENERATOR_LLM_MODEL=gpt-4o-mini
    """

    model_config = SettingsConfigDict(
        env_prefix="GENERATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM settings
    llm_provider: str = Field(
        default="openai",
        description="LLM provider (openai, anthropic, azure, etc.)",
    )
    llm_model: str = Field(
        default="gpt-4o-2024-08-06",
        description="LLM model name",
    )
    llm_api_key: str | None = Field(
        default=None,
        description="API key for the LLM provider (resolved from the secret store when unset)",
    )
    api_key_secret_name: str = Field(
        default="OPENAI_API_KEY",
        description="Secret holding the provider API key",
    )
    llm_base_url: str | None = Field(
        default=None,
        description="Base URL for OpenAI-compatible endpoints",
    )
    llm_max_retries: Annotated[int, Field(ge=0)] = Field(
        default=0,
        description="Retry attempts for a failed LLM call",
    )
    llm_timeout: Annotated[float, Field(gt=0)] = Field(
        default=120.0,
        description="Timeout in seconds for LLM calls",
    )
    temperature: Annotated[float, Field(ge=0, le=2)] = Field(
        default=0.3,
        description="Sampling temperature; low values keep output factual",
    )
    use_mock_ai: bool = Field(
        default=False,
        description="Produce deterministic content without calling the provider",
    )

    # Pricing
    pricing: dict[str, ModelPricing] = Field(
        default_factory=lambda: dict(DEFAULT_PRICING),
        description="Per-model token prices used for cost reporting",
    )

    # Content length targets
    resume_min_words: Annotated[int, Field(gt=0)] = Field(default=600)
    resume_max_words: Annotated[int, Field(gt=0)] = Field(default=900)
    cover_letter_min_words: Annotated[int, Field(gt=0)] = Field(default=250)
    cover_letter_max_words: Annotated[int, Field(gt=0)] = Field(default=350)
    max_experience_entries: Annotated[int, Field(gt=0)] = Field(default=4)
    max_highlights_per_entry: Annotated[int, Field(gt=0)] = Field(default=4)
    resume_description_chars: Annotated[int, Field(gt=0)] = Field(default=2000)
    cover_letter_description_chars: Annotated[int, Field(gt=0)] = Field(default=1500)

    @field_validator("llm_provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        """Lower-case the provider name."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("llm_provider must be a non-empty string")
        return v.strip().lower()

    def pricing_for(self, model: str | None) -> ModelPricing:
        """Return prices for a model, falling back to the configured model."""
        if model and model in self.pricing:
            return self.pricing[model]
        if self.llm_model in self.pricing:
            return self.pricing[self.llm_model]
        return DEFAULT_PRICING["gpt-4o-2024-08-06"]


# Singleton instance
_content_config: ContentConfig | None = None


def get_content_config() -> ContentConfig:
    """Get the content configuration singleton."""
    global _content_config
    if _content_config is None:
        _content_config = ContentConfig()
    return _content_config


def reset_content_config() -> None:
    """Reset the configuration singleton (useful for testing)."""
    global _content_config
    _content_config = None

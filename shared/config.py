"""
Configuration management.

Centralized environment variable management and validation.
"""

from typing import Literal, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.errors import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API keys
    # Optional at load time; remote calls raise ConfigError when the key is missing
    openai_api_key: Optional[str] = None
    replicate_api_token: Optional[str] = None

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"

    # Scenario synthesis (OpenAI, vision + JSON output)
    scenario_model: str = "gpt-4o"
    scenario_max_tokens: int = 16000
    scenario_timeout_seconds: float = 90.0
    scenario_temperature: float = 0.8

    # Shot synthesis (Replicate)
    # IMAGE_MODEL: owner/model or owner/model:version
    image_model: str = "black-forest-labs/flux-1.1-pro-ultra"
    image_aspect_ratio: str = "16:9"
    image_timeout_seconds: float = 120.0
    image_download_timeout_seconds: float = 60.0

    # Campaign shape
    # SHOT_COUNT: number of prompts the scenario must contain (one job per prompt)
    shot_count: int = 30
    # GENERATION_CONCURRENCY: max in-flight image generations per batch
    generation_concurrency: int = 3

    # Intake limits
    max_reference_images: int = 10
    max_reference_image_mb: int = 5
    max_guidance_length: int = 2000
    reference_max_dimension: int = 1024

    # Retry policy for remote calls
    retry_max_attempts: int = 3
    retry_base_delay: float = 2.0

    # Export
    export_prefix: str = "campaign-shot"

    @field_validator("openai_api_key")
    @classmethod
    def validate_openai_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Validate OpenAI API key format when provided."""
        if not v:
            return None
        if not v.startswith("sk-"):
            raise ConfigError("OPENAI_API_KEY must start with 'sk-'")
        if len(v) < 20:
            raise ConfigError("OPENAI_API_KEY appears to be invalid")
        return v

    @field_validator("replicate_api_token")
    @classmethod
    def validate_replicate_api_token(cls, v: Optional[str]) -> Optional[str]:
        """Validate Replicate API token format when provided."""
        if not v:
            return None
        if not v.startswith("r8_"):
            raise ConfigError("REPLICATE_API_TOKEN must start with 'r8_'")
        if len(v) < 20:
            raise ConfigError("REPLICATE_API_TOKEN appears to be invalid")
        return v

    @field_validator("shot_count", "generation_concurrency", "max_reference_images", "max_reference_image_mb")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Counts and limits must be at least 1."""
        if v < 1:
            raise ConfigError("Campaign counts and limits must be positive integers")
        return v

    def require_openai_api_key(self) -> str:
        """Return the OpenAI key or raise ConfigError if it is not configured."""
        if not self.openai_api_key:
            raise ConfigError("OPENAI_API_KEY is not set. Add it to the environment or .env file.")
        return self.openai_api_key

    def require_replicate_api_token(self) -> str:
        """Return the Replicate token or raise ConfigError if it is not configured."""
        if not self.replicate_api_token:
            raise ConfigError("REPLICATE_API_TOKEN is not set. Add it to the environment or .env file.")
        return self.replicate_api_token


# Singleton instance
try:
    settings = Settings()
except Exception as e:
    # Re-raise as ConfigError for consistency
    if isinstance(e, ConfigError):
        raise
    raise ConfigError(f"Failed to load configuration: {str(e)}") from e

"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Keys shipped in .env templates that must never reach the provider
PLACEHOLDER_KEY_MARKERS = ("xxx", "your-", "changeme")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="sales-copilot-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Auth
    jwt_secret: str = Field(..., description="Secret used to verify dashboard JWTs")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")

    # OpenAI
    openai_api_key: str = Field(default="", description="OpenAI API key (empty disables the provider)")
    openai_model: str = Field(default="gpt-4-turbo-preview", description="OpenAI model to use")
    openai_max_tokens: int = Field(default=200, description="Max completion tokens per suggestion")
    openai_temperature: float = Field(default=0.7, description="Sampling temperature for suggestions")
    mock_openai: bool | None = Field(default=None, description="Skip the provider and use the rule-based fallback. Auto-enabled outside production.")

    # Suggestion cache
    suggestion_cache_ttl: int = Field(default=300, description="Suggestion cache TTL in seconds")
    suggestion_cache_size: int = Field(default=1000, description="Maximum cached suggestions")

    # Background tasks
    background_task_concurrency: int = Field(default=10, description="Concurrent background tasks")
    background_task_queue_size: int = Field(default=100, description="Max pending background tasks before new ones are dropped")
    background_task_timeout_seconds: float = Field(default=30.0, description="Background task timeout in seconds")

    # WhatsApp
    whatsapp_verify_token: str = Field(default="", description="Token expected on the WhatsApp webhook verification handshake")

    @model_validator(mode="after")
    def set_mock_openai_default(self) -> "Settings":
        """Set mock_openai based on environment if not explicitly set via MOCK_OPENAI env var."""
        if self.mock_openai is None:
            self.mock_openai = self.app_env != "production"

        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_ai_provider_configured(self) -> bool:
        """Check if a real OpenAI key is present and mock mode is off."""
        key = self.openai_api_key.strip()
        if not key or self.mock_openai:
            return False
        return not any(marker in key for marker in PLACEHOLDER_KEY_MARKERS)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()

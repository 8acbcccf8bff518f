# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables (and an optional ``.env``
file) with defaults suitable for local development. The Settings class
aggregates the subsettings; a cached instance is provided via
get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.analytics.timeline_limit
    20
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration for the analytics store.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "kidtutor"
    password: SecretStr = SecretStr("kidtutor_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "kidtutor"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class LLMSettings(BaseSettings):
    """LLM provider configuration using LiteLLM.

    LiteLLM routes requests by model prefix, so a single model string
    selects the provider.

    Attributes:
        default_model: Model identifier passed to LiteLLM.
        google_api_key: Google AI API key.
        openai_api_key: OpenAI API key.
        ollama_base_url: Base URL for a local Ollama server.
        request_timeout: Request timeout in seconds.
        max_retries: Retry attempts made by LiteLLM.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    default_model: str = Field(
        default="gemini/gemini-2.0-flash",
        validation_alias="LLM_DEFAULT_MODEL",
    )
    google_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="GOOGLE_API_KEY",
    )
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        validation_alias="OLLAMA_BASE_URL",
    )

    request_timeout: float = 60.0
    max_retries: int = 0

    def api_key_for(self, model: str) -> str | None:
        """Return the API key matching a model's provider prefix.

        Args:
            model: LiteLLM model identifier.

        Returns:
            The secret value, or None when the provider needs no key.
        """
        if model.startswith("gemini/") and self.google_api_key:
            return self.google_api_key.get_secret_value()
        if model.startswith(("gpt-", "openai/")) and self.openai_api_key:
            return self.openai_api_key.get_secret_value()
        return None


class AnalyticsSettings(BaseSettings):
    """Tunables for the analytics generators.

    Attributes:
        recommendations_enabled: Ask the LLM for recommendations. When off,
            the rule-based fallback is always used.
        recommendation_model: Model override for recommendations.
        max_recommendations: Upper bound on recommendations kept from the LLM.
        timeline_limit: Entries kept in the progress activity timeline.
        streak_lookback_days: How far back the current streak is counted.
        trend_retention_days: Days kept in the per-day performance trend map.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANALYTICS_",
        extra="ignore",
    )

    recommendations_enabled: bool = True
    recommendation_model: str | None = None
    max_recommendations: int = Field(default=5, ge=1)
    timeline_limit: int = Field(default=20, ge=1)
    streak_lookback_days: int = Field(default=30, ge=1)
    trend_retention_days: int = Field(default=30, ge=1)


class CORSSettings(BaseSettings):
    """CORS configuration for the API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        db: Database settings.
        llm: LLM provider settings.
        analytics: Analytics generator settings.
        cors: CORS settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()

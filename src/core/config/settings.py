# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the adaptive
LMS. Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL configuration for the LMS database.

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

    user: str = "lms"
    password: SecretStr = SecretStr("lms_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "adaptive_lms"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class LLMSettings(BaseSettings):
    """LLM provider configuration using LiteLLM.

    LiteLLM handles provider routing based on the model prefix. When no
    provider key is configured the tutor answers with a canned reply.

    Attributes:
        model: Model identifier in LiteLLM format.
        openai_api_key: OpenAI API key.
        anthropic_api_key: Anthropic API key.
        temperature: Sampling temperature for tutor replies.
        max_tokens: Maximum tokens per tutor reply.
        request_timeout: Request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    model: str = Field(
        default="gpt-4o-mini",
        validation_alias="LLM_MODEL",
    )
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
    )
    anthropic_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="ANTHROPIC_API_KEY",
    )
    temperature: float = 0.7
    max_tokens: int = 1000
    request_timeout: float = 60.0

    @property
    def has_provider_key(self) -> bool:
        """Check whether any provider API key is configured."""
        return self.openai_api_key is not None or self.anthropic_api_key is not None


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Attributes:
        secret_key: Secret key for signing tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token expiration time.
        refresh_token_expire_days: Refresh token expiration time.
        issuer: Token issuer claim.
        audience: Token audience claim.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr("change-this-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=15,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    refresh_token_expire_days: int = Field(
        default=7,
        validation_alias="REFRESH_TOKEN_EXPIRE_DAYS",
    )
    issuer: str = "adaptive-lms"
    audience: str = "adaptive-lms-api"


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        requests_per_minute: Maximum requests per minute per client.
        storage_uri: slowapi storage backend URI.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    requests_per_minute: int = 100
    storage_uri: str = "memory://"


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class LearningSettings(BaseSettings):
    """Defaults used by mastery tracking and quiz grading.

    Attributes:
        decay_rate: Default weekly decay rate for new mastery records.
        pass_threshold: Percentage needed to pass a quiz.
        expected_item_time_ms: Expected time on a single quiz item.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEARNING_",
        extra="ignore",
    )

    decay_rate: float = 0.05
    pass_threshold: float = 70.0
    expected_item_time_ms: int = 60_000


class NotificationSettings(BaseSettings):
    """Notification delivery configuration.

    Attributes:
        expiration_days: Days before an in-app notification expires.
        scheduled_batch_size: Scheduled notifications processed per run.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATION_",
        extra="ignore",
    )

    expiration_days: int = 30
    scheduled_batch_size: int = 100


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        workers: Number of worker processes.
        reload: Whether to enable auto-reload.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 3000
    workers: int = 2
    reload: bool = False


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        db: Database settings.
        llm: LLM provider settings.
        jwt: JWT authentication settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        learning: Mastery and grading thresholds.
        notification: Notification delivery settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    learning: LearningSettings = Field(default_factory=LearningSettings)
    notification: NotificationSettings = Field(default_factory=NotificationSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            default_jwt_secret = "change-this-in-production"
            if self.jwt.secret_key.get_secret_value() == default_jwt_secret:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
        return self

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

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()

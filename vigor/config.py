"""Centralized configuration for the Vigor live-events service.

Uses Pydantic BaseSettings with environment variable loading and validation.
All VIGOR_* environment variables are validated at import time.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

_AUTH_PROVIDERS = ("jwt", "supabase")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Runtime
    environment: str = Field(
        default="development", description="Deployment environment: development, test, production"
    )

    # Auth
    auth_provider: str = Field(
        default="jwt", description="Comma-separated auth providers: jwt, supabase"
    )
    jwt_secret: str | None = Field(default=None, description="HS256 secret for API access tokens")
    supabase_jwt_secret: str | None = Field(default=None, description="Supabase JWT secret")

    # Live events
    heartbeat_interval_ms: int = Field(
        default=15000, ge=100, description="Heartbeat frame interval in milliseconds"
    )
    subscriber_queue_size: int = Field(
        default=100, ge=1, description="Frames buffered per connection before it is pruned"
    )

    # Client reconnection
    client_max_retries: int = Field(default=5, ge=0, description="Reconnect attempts before giving up")
    client_retry_delay_ms: int = Field(default=1000, ge=0, description="Initial backoff delay")
    client_max_retry_delay_ms: int = Field(default=30000, ge=0, description="Backoff ceiling")

    # Logging
    log_format: str = Field(default="text", description="Log format: text or json")
    log_level: str = Field(default="INFO", description="Python log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")  # noqa: S104
    port: int = Field(default=4000, ge=1, le=65535, description="Server bind port")

    # CORS
    cors_origins: str = Field(default="*", description="Comma-separated CORS origins")

    # Rate limiting
    rate_limit: str = Field(
        default="10/minute",
        description="Per-client limit on POST /v1/events/test, e.g. 10/minute; 'none' disables",
    )

    model_config = {"env_prefix": "VIGOR_", "case_sensitive": False, "extra": "ignore"}

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        v = v.lower()
        if v not in ("development", "test", "production"):
            msg = f"VIGOR_ENVIRONMENT must be 'development', 'test' or 'production', got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("auth_provider")
    @classmethod
    def validate_auth_provider(cls, v: str) -> str:
        names = [n.strip().lower() for n in v.split(",") if n.strip()]
        if not names:
            msg = "VIGOR_AUTH_PROVIDER must name at least one provider"
            raise ValueError(msg)
        for name in names:
            if name not in _AUTH_PROVIDERS:
                msg = f"VIGOR_AUTH_PROVIDER entries must be one of {_AUTH_PROVIDERS}, got '{name}'"
                raise ValueError(msg)
        return ",".join(names)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            msg = f"VIGOR_LOG_FORMAT must be 'text' or 'json', got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        import logging

        v = v.upper()
        if not isinstance(getattr(logging, v, None), int):
            msg = f"VIGOR_LOG_LEVEL must be a valid Python log level, got '{v}'"
            raise ValueError(msg)
        return v

    @property
    def auth_provider_names(self) -> list[str]:
        """Return parsed list of auth provider names, in priority order."""
        return self.auth_provider.split(",")

    @property
    def heartbeat_interval(self) -> float:
        """Heartbeat interval in seconds."""
        return self.heartbeat_interval_ms / 1000

    @property
    def cors_origin_list(self) -> list[str]:
        """Return parsed list of CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


# Singleton, validated at import time.
settings = Settings()

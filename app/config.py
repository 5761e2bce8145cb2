"""Application configuration using Pydantic settings."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Invoice Payments Service")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Hosted backend (auth, REST store, functions)
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_service_role_key: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    http_timeout: float = Field(default=30.0)

    # Payment links
    payment_token_ttl_days: int = Field(default=7, ge=1)
    payment_token_algorithm: str = Field(default="SHA256")
    payment_link_refresh_margin_seconds: int = Field(default=60, ge=0)

    # Embedded payment frame
    payment_frame_message_prefix: str = Field(default="anet/")
    payment_frame_origin: Optional[str] = Field(
        default=None, description="Expected origin of frame messages; derived from the link when unset"
    )

    @field_validator("payment_token_algorithm")
    @classmethod
    def validate_payment_token_algorithm(cls, v: str) -> str:
        """Validate token hash algorithm."""
        allowed = ["SHA256", "SHA384", "SHA512"]
        if v.upper() not in allowed:
            raise ValueError(f"Payment token algorithm must be one of {allowed}")
        return v.upper()

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


# Global settings instance
settings = Settings()

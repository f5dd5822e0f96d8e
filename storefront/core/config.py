"""Application configuration management using Pydantic Settings."""

import json
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROMO_CODES = {
    "SAVE10": "0.10",
    "WELCOME20": "0.20",
    "STUDENT15": "0.15",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    The remote store is optional: without SUPABASE_URL and SUPABASE_SECRET_KEY
    every record operation is served from local storage.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="storefront-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")
    currency: str = Field(default="$", description="Currency symbol shown in notifications")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_secret_key: str = Field(default="", description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(default="", description="Supabase signing key JWK (JSON string) for JWT token verification")
    remote_timeout_seconds: float = Field(default=10.0, gt=0, description="Seconds before a remote call falls back to local storage")

    # Local storage
    local_storage_dir: Path = Field(default=Path(".storefront"), description="Directory holding local JSON stores")

    # Checkout
    payment_simulation_delay_seconds: float = Field(default=2.0, ge=0, description="Simulated card authorization delay")
    promo_codes: dict[str, Decimal] = Field(
        default_factory=lambda: {code: Decimal(value) for code, value in DEFAULT_PROMO_CODES.items()},
        description="Promo code to discount fraction mapping (JSON object)",
    )

    # Back-office authorization
    admin_emails: str = Field(default="", description="Comma-separated list of back-office email addresses")
    admin_roles: str = Field(default="admin,seller", description="Comma-separated list of back-office roles")

    # Session
    session_cookie_name: str = Field(default="storefront_session", description="Session cookie name")
    session_cookie_max_age: int = Field(default=2592000, description="Session cookie max age in seconds (30 days)")
    session_cookie_secure: bool = Field(default=True, description="Use secure cookies (HTTPS only)")

    @field_validator("promo_codes", mode="before")
    @classmethod
    def parse_promo_codes(cls, value: object) -> object:
        """Accept promo codes as a JSON string and normalise codes to upper case."""
        if isinstance(value, str):
            value = json.loads(value)
        if isinstance(value, dict):
            return {str(code).upper(): Decimal(str(fraction)) for code, fraction in value.items()}
        return value

    @field_validator("promo_codes")
    @classmethod
    def check_promo_fractions(cls, value: dict[str, Decimal]) -> dict[str, Decimal]:
        for code, fraction in value.items():
            if not Decimal("0") < fraction < Decimal("1"):
                raise ValueError(f"Promo code {code} must map to a fraction between 0 and 1")
        return value

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def admin_emails_list(self) -> list[str]:
        return [email.strip().lower() for email in self.admin_emails.split(",") if email.strip()]

    @property
    def admin_roles_list(self) -> list[str]:
        return [role.strip() for role in self.admin_roles.split(",") if role.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_remote_configured(self) -> bool:
        """Check if the Supabase remote store can be used."""
        return bool(self.supabase_url and self.supabase_secret_key)


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

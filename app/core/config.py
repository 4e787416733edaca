"""
Application configuration models and helpers.

Centralizes settings management so the relay routes, the Google client and
the payment gate share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_csv(value: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (tuple, list)):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class GoogleSettings(BaseSettings):
    """Configuration required for delegating sign-in to Google."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    client_id: str = Field(..., validation_alias="GOOGLE_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="GOOGLE_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(
        ...,
        validation_alias="GOOGLE_REDIRECT_URI",
        description="This application's /auth/callback URL as registered with Google.",
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "openid",
            "email",
            "profile",
            "https://www.googleapis.com/auth/analytics.readonly",
            "https://www.googleapis.com/auth/analytics.manage.users.readonly",
        ),
        validation_alias="OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)


class BackendSettings(BaseSettings):
    """Location of the authorization service that receives enriched callbacks."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    base_url: str = Field("http://localhost:3000", validation_alias="BACKEND_BASE_URL")
    timeout_seconds: float = Field(10.0, validation_alias="BACKEND_TIMEOUT_SECONDS")


class PaymentSettings(BaseSettings):
    """Razorpay checkout configuration for the payment gate."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    razorpay_key_id: str = Field("", validation_alias="RAZORPAY_KEY_ID")
    amount: int = Field(
        100,
        validation_alias="PAYMENT_AMOUNT",
        description="Amount in the currency's smallest unit.",
    )
    currency: str = Field("INR", validation_alias="PAYMENT_CURRENCY")
    display_price: str = Field("$10 USD", validation_alias="PAYMENT_DISPLAY_PRICE")
    product_name: str = Field(
        "GA4 Claude Extension", validation_alias="PAYMENT_PRODUCT_NAME"
    )
    description: str = Field(
        "Access Google Analytics 4 in Claude", validation_alias="PAYMENT_DESCRIPTION"
    )
    prefill_email: str = Field(
        "user@example.com", validation_alias="PAYMENT_PREFILL_EMAIL"
    )
    verify_url: Optional[str] = Field(
        None,
        validation_alias="PAYMENT_VERIFY_URL",
        description="Defaults to {APP_BASE_URL}/payment/verify when omitted.",
    )
    retry_max_count: int = Field(3, validation_alias="PAYMENT_RETRY_MAX_COUNT")
    theme_color: str = Field("#0045a0", validation_alias="PAYMENT_THEME_COLOR")
    timeout_seconds: float = Field(15.0, validation_alias="PAYMENT_TIMEOUT_SECONDS")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    flow_context_secret: Optional[str] = Field(
        None,
        validation_alias="FLOW_CONTEXT_SECRET",
        description=(
            "Secret used to sign state tokens and encrypt stored flow context."
        ),
    )
    allowed_redirect_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        validation_alias="ALLOWED_REDIRECT_ORIGINS",
        description="Origins the final redirect may target. Empty allows any origin.",
    )
    flow_cookie_name: str = Field("relay_flow", validation_alias="FLOW_COOKIE_NAME")
    flow_cookie_secure: bool = Field(False, validation_alias="FLOW_COOKIE_SECURE")

    @field_validator("allowed_redirect_origins", mode="before")
    @classmethod
    def _split_origins(
        cls, value: str | tuple[str, ...] | list[str] | None
    ) -> tuple[str, ...]:
        return tuple(origin.rstrip("/") for origin in _split_csv(value))


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    app_base_url: str = Field(
        "http://localhost:8000",
        validation_alias="APP_BASE_URL",
        description="Public origin of this application.",
    )
    flow_context_db_path: Optional[str] = Field(
        None,
        validation_alias="FLOW_CONTEXT_DB_PATH",
        description="SQLite file for flow context. In-memory storage when omitted.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    payment: PaymentSettings = Field(default_factory=PaymentSettings)

    @property
    def payment_verify_url(self) -> str:
        if self.payment.verify_url:
            return self.payment.verify_url
        return f"{self.app_base_url.rstrip('/')}/payment/verify"

    @property
    def flow_secret(self) -> str:
        return self.security.flow_context_secret or self.google.client_secret


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "BackendSettings",
    "GoogleSettings",
    "OAuthSettings",
    "PaymentSettings",
    "SecuritySettings",
    "get_settings",
]

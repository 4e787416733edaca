"""Schemas exchanged with the backend authorization service."""

from __future__ import annotations

from datetime import datetime, timezone as tz
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .identity import GoogleCredentials, GoogleProfile, IdentitySession

_FAILURE_STATUSES = {"error", "failed", "failure"}


class ClientMetadata(BaseModel):
    """Snapshot of the user's browser at callback time."""

    timestamp: str = Field(
        default_factory=lambda: datetime.now(tz.utc).isoformat()
    )
    user_agent: Optional[str] = None
    screen_resolution: Optional[str] = None
    timezone: Optional[str] = None
    locale: Optional[str] = None
    referrer: Optional[str] = None

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        *,
        screen_resolution: str | None = None,
        timezone_name: str | None = None,
    ) -> "ClientMetadata":
        accept_language = headers.get("accept-language") or ""
        locale = accept_language.split(",")[0].split(";")[0].strip() or None
        return cls(
            user_agent=headers.get("user-agent"),
            screen_resolution=screen_resolution,
            timezone=timezone_name,
            locale=locale,
            referrer=headers.get("referer"),
        )


class EnrichedCallbackPayload(BaseModel):
    """Body POSTed to the backend once Google sign-in completes."""

    session: IdentitySession
    google_credentials: GoogleCredentials
    google_profile: GoogleProfile
    client_metadata: ClientMetadata

    @classmethod
    def assemble(
        cls, session: IdentitySession, client_metadata: ClientMetadata
    ) -> "EnrichedCallbackPayload":
        return cls(
            session=session,
            google_credentials=session.credentials,
            google_profile=session.profile,
            client_metadata=client_metadata,
        )


class BackendCallbackResponse(BaseModel):
    """Response body returned by the backend callback endpoint.

    Unexpected field types are coerced, never rejected. Only an explicit
    failure marker stops the flow.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    success: Optional[bool] = None
    status: Optional[str] = None
    message: Optional[str] = None
    redirect_url: Optional[str] = Field(None, alias="redirectUrl")

    @field_validator("success", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> Optional[bool]:
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        return None

    @field_validator("status", "message", "redirect_url", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @classmethod
    def from_body(cls, body: Any) -> "BackendCallbackResponse":
        if not isinstance(body, dict):
            return cls()
        try:
            return cls.model_validate(body)
        except ValidationError:
            return cls()

    @property
    def reports_failure(self) -> bool:
        """Only an explicit failure marker counts; silence is success."""
        if self.success is False:
            return True
        return (self.status or "").lower() in _FAILURE_STATUSES


__all__ = ["BackendCallbackResponse", "ClientMetadata", "EnrichedCallbackPayload"]

"""Identity session established by Google."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class GoogleCredentials(BaseModel):
    """Token fields returned by Google's token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int
    token_type: str = "Bearer"
    scope: str = ""
    id_token: Optional[str] = None


class GoogleProfile(BaseModel):
    """Subset of the OpenID Connect userinfo document."""

    sub: str = Field(..., description="Stable Google subject identifier.")
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    email_verified: bool = False
    locale: Optional[str] = None
    hd: Optional[str] = Field(None, description="Hosted domain for Workspace accounts.")


class IdentitySession(BaseModel):
    """Read-only snapshot of a completed Google sign-in."""

    provider: str = "google"
    credentials: GoogleCredentials
    profile: GoogleProfile
    established_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = ["GoogleCredentials", "GoogleProfile", "IdentitySession"]

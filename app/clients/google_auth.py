"""
Google OAuth utilities.

These helpers start the delegated Google sign-in and turn the returned
authorization code into an identity session.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Dict
from urllib.parse import urlencode

import httpx

from fastapi import status

from app.core.config import GoogleSettings, OAuthSettings
from app.schemas import GoogleCredentials, GoogleProfile, IdentitySession


class OAuthStateError(Exception):
    """Raised when a state token is malformed, tampered with or expired."""


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""


class OAuthProfileError(Exception):
    """Raised when the userinfo endpoint cannot describe the signed-in user."""


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str, ttl_seconds: int | None = None) -> None:
        self._secret_key = secret_key.encode("utf-8")
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds else None

    def encode(self, payload: Dict[str, Any]) -> str:
        payload = {"issued_at": datetime.now(timezone.utc).isoformat(), **payload}
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise OAuthStateError("Malformed OAuth state token.") from exc

        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise OAuthStateError("Invalid OAuth state signature.")

        payload = json.loads(serialized)
        if self._ttl is not None:
            self._check_expiry(payload)
        return payload

    def _check_expiry(self, payload: Dict[str, Any]) -> None:
        issued_at_raw = payload.get("issued_at")
        if not issued_at_raw:
            raise OAuthStateError("Missing issued_at in state token.")
        try:
            issued_at = datetime.fromisoformat(issued_at_raw)
        except ValueError as exc:
            raise OAuthStateError("Invalid issued_at in state token.") from exc
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - issued_at > self._ttl:
            raise OAuthStateError("OAuth state token has expired.")


class GoogleOAuthClient:
    """Build Google authorization URLs and exchange authorization codes."""

    AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

    def __init__(
        self,
        google_settings: GoogleSettings,
        oauth_settings: OAuthSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._google = google_settings
        self._oauth = oauth_settings
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def build_authorization_url(self, state: str, access_type: str = "offline") -> str:
        """Construct the Google OAuth consent URL.

        ``prompt=consent`` forces Google to issue a refresh token even when the
        user has approved this application before.
        """
        params = {
            "client_id": self._google.client_id,
            "redirect_uri": str(self._google.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._oauth.scopes),
            "access_type": access_type,
            "include_granted_scopes": "true",
            "prompt": "consent",
            "state": state,
        }
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> GoogleCredentials:
        """Exchange an authorization code for tokens."""
        payload = {
            "code": code,
            "client_id": self._google.client_id,
            "client_secret": self._google.client_secret,
            "redirect_uri": str(self._google.redirect_uri),
            "grant_type": "authorization_code",
        }

        try:
            async with self._client() as client:
                response = await client.post(self.TOKEN_URL, data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(f"Token endpoint unreachable: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(response.text)

        token_payload = response.json()
        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")

        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete token payload returned from Google.")

        return GoogleCredentials(
            access_token=access_token,
            refresh_token=token_payload.get("refresh_token"),
            expires_in=int(expires_in),
            token_type=token_payload.get("token_type") or "Bearer",
            scope=token_payload.get("scope") or "",
            id_token=token_payload.get("id_token"),
        )

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        """Load the signed-in user's profile from the userinfo endpoint."""
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with self._client() as client:
                response = await client.get(self.USERINFO_URL, headers=headers)
        except httpx.HTTPError as exc:
            raise OAuthProfileError(f"Userinfo endpoint unreachable: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            raise OAuthProfileError(response.text)

        profile = response.json()
        if not profile.get("sub"):
            raise OAuthProfileError("Userinfo response is missing the subject identifier.")
        return GoogleProfile.model_validate(profile)

    async def establish_session(self, code: str) -> IdentitySession:
        """Complete sign-in: exchange ``code`` and describe the user."""
        credentials = await self.exchange_authorization_code(code)
        profile = await self.fetch_profile(credentials.access_token)
        return IdentitySession(credentials=credentials, profile=profile)


__all__ = [
    "GoogleOAuthClient",
    "OAuthProfileError",
    "OAuthStateEncoder",
    "OAuthStateError",
    "OAuthTokenExchangeError",
]

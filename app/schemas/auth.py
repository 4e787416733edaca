"""Schemas related to the inbound authorization request."""

from __future__ import annotations

from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SCOPE = "scrape"

AUTHORIZATION_REQUEST_FIELDS = (
    "client_id",
    "redirect_uri",
    "response_type",
    "state",
    "code_challenge",
    "code_challenge_method",
    "scope",
)


def first_param(params: Mapping[str, str], name: str) -> Optional[str]:
    """Return the first value of a query parameter that may be repeated."""
    getlist = getattr(params, "getlist", None)
    if getlist is None:
        return params.get(name)
    values = getlist(name)
    return values[0] if values else None


class AuthorizationRequest(BaseModel):
    """Authorization request issued by the downstream client application."""

    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = Field(None, description="Opaque client identifier.")
    redirect_uri: Optional[str] = Field(
        None, description="Absolute URI the user is returned to after payment."
    )
    response_type: Optional[str] = Field(None, description="Must be 'code'.")
    state: Optional[str] = Field(None, description="Opaque value echoed back.")
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None
    scope: Optional[str] = None

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "AuthorizationRequest":
        return cls(
            **{name: first_param(params, name) for name in AUTHORIZATION_REQUEST_FIELDS}
        )

    @property
    def is_valid(self) -> bool:
        return bool(self.client_id) and bool(self.redirect_uri) and self.response_type == "code"

    @property
    def display_scope(self) -> str:
        return self.scope or DEFAULT_SCOPE

    def query_items(self) -> list[tuple[str, str]]:
        """Return every non-empty field as ordered query parameters."""
        items: list[tuple[str, str]] = []
        for name in AUTHORIZATION_REQUEST_FIELDS:
            value = getattr(self, name)
            if value:
                items.append((name, value))
        return items


class GoogleCallbackParams(BaseModel):
    """Query parameters Google appends when returning to the callback route."""

    code: Optional[str] = Field(None, description="Authorization code returned by Google.")
    state: Optional[str] = Field(None, description="Signed state issued when delegating.")
    error: Optional[str] = Field(None, description="Error code when consent failed.")


__all__ = [
    "AUTHORIZATION_REQUEST_FIELDS",
    "AuthorizationRequest",
    "DEFAULT_SCOPE",
    "GoogleCallbackParams",
    "first_param",
]

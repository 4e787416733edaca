"""
The relay as one state machine.

Authorize, callback and payment are states of the same flow, selected by the
navigation path. ``resolve_flow_state`` is pure so routing decisions can be
tested without a web server.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Union

from app.core.errors import FlowError
from app.schemas import AuthorizationRequest, first_param
from app.services.callback_reconciler import PAYMENT_PATH
from app.services.request_capture import AUTHORIZE_PATH, capture_authorization_request

CALLBACK_PATH = "/auth/callback"


@dataclass(frozen=True)
class Authorize:
    request: AuthorizationRequest


@dataclass(frozen=True)
class Callback:
    request: AuthorizationRequest


@dataclass(frozen=True)
class Payment:
    redirect_uri: str


@dataclass(frozen=True)
class Error:
    error: FlowError


@dataclass(frozen=True)
class Idle:
    path: str


FlowState = Union[Authorize, Callback, Payment, Error, Idle]


def resolve_flow_state(
    path: str,
    query: Mapping[str, str],
    stored: Optional[AuthorizationRequest],
) -> FlowState:
    normalized = path.rstrip("/") or "/"
    if normalized == AUTHORIZE_PATH:
        try:
            return Authorize(capture_authorization_request(normalized, query))
        except FlowError as exc:
            return Error(exc)
    if normalized == CALLBACK_PATH:
        if stored is None:
            return Error(FlowError.session_expired())
        return Callback(stored)
    if normalized == PAYMENT_PATH:
        redirect_uri = first_param(query, "redirect_uri")
        if not redirect_uri:
            return Error(FlowError.malformed_request())
        return Payment(redirect_uri)
    return Idle(normalized)


__all__ = [
    "Authorize",
    "CALLBACK_PATH",
    "Callback",
    "Error",
    "FlowState",
    "Idle",
    "Payment",
    "resolve_flow_state",
]

"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_backend_client,
    get_callback_reconciler,
    get_flow_context_store,
    get_google_oauth_client,
    get_identity_delegate,
    get_oauth_state_encoder,
    get_payment_gate,
    get_payment_verification_client,
    get_redirect_policy,
)
from .config import SettingsDependency, get_app_settings, get_payment_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_payment_settings",
    "get_backend_client",
    "get_callback_reconciler",
    "get_flow_context_store",
    "get_google_oauth_client",
    "get_identity_delegate",
    "get_oauth_state_encoder",
    "get_payment_gate",
    "get_payment_verification_client",
    "get_redirect_policy",
]

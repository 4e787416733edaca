"""Expose constructed client wrappers."""

from .authorization_backend import AuthorizationBackendClient, BackendCallbackError
from .google_auth import GoogleOAuthClient, OAuthStateEncoder
from .payment_verification import PaymentVerificationClient, PaymentVerificationError

__all__ = [
    "AuthorizationBackendClient",
    "BackendCallbackError",
    "GoogleOAuthClient",
    "OAuthStateEncoder",
    "PaymentVerificationClient",
    "PaymentVerificationError",
]

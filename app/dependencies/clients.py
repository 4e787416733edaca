"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import (
    AuthorizationBackendClient,
    GoogleOAuthClient,
    OAuthStateEncoder,
    PaymentVerificationClient,
)
from app.core.config import get_settings
from app.services import (
    CallbackReconciler,
    ContextCipher,
    FlowContextStore,
    IdentityDelegate,
    InMemoryFlowContextStore,
    PaymentGate,
    RedirectPolicy,
    SQLiteFlowContextStore,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide a state encoder keyed by the flow secret."""
    settings = _settings()
    return OAuthStateEncoder(
        secret_key=settings.flow_secret,
        ttl_seconds=settings.oauth.state_ttl_seconds,
    )


@lru_cache()
def get_google_oauth_client() -> GoogleOAuthClient:
    """Create a singleton Google OAuth client."""
    settings = _settings()
    return GoogleOAuthClient(settings.google, settings.oauth)


@lru_cache()
def get_flow_context_store() -> FlowContextStore:
    """Provide the flow context store; SQLite when a database path is configured."""
    settings = _settings()
    ttl = settings.oauth.state_ttl_seconds
    if settings.flow_context_db_path:
        return SQLiteFlowContextStore(
            settings.flow_context_db_path,
            cipher=ContextCipher(secret=settings.flow_secret),
            ttl_seconds=ttl,
        )
    return InMemoryFlowContextStore(ttl_seconds=ttl)


@lru_cache()
def get_backend_client() -> AuthorizationBackendClient:
    """Provide the backend authorization service client."""
    return AuthorizationBackendClient(_settings().backend)


@lru_cache()
def get_payment_verification_client() -> PaymentVerificationClient:
    """Provide the payment verification client."""
    settings = _settings()
    return PaymentVerificationClient(
        settings.payment_verify_url,
        timeout=settings.payment.timeout_seconds,
    )


@lru_cache()
def get_redirect_policy() -> RedirectPolicy:
    return RedirectPolicy(_settings().security.allowed_redirect_origins)


def get_identity_delegate() -> IdentityDelegate:
    """Build the identity delegate around the shared store and Google client."""
    return IdentityDelegate(
        store=get_flow_context_store(),
        oauth_client=get_google_oauth_client(),
        state_encoder=get_oauth_state_encoder(),
        redirect_policy=get_redirect_policy(),
    )


def get_callback_reconciler() -> CallbackReconciler:
    """Build the callback reconciler."""
    return CallbackReconciler(
        store=get_flow_context_store(),
        oauth_client=get_google_oauth_client(),
        state_encoder=get_oauth_state_encoder(),
        backend_client=get_backend_client(),
    )


def get_payment_gate() -> PaymentGate:
    """Build the payment gate."""
    return PaymentGate(
        settings=_settings().payment,
        verification_client=get_payment_verification_client(),
        redirect_policy=get_redirect_policy(),
    )


__all__ = [
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

"""Public schema exports."""

from .auth import (
    AUTHORIZATION_REQUEST_FIELDS,
    DEFAULT_SCOPE,
    AuthorizationRequest,
    GoogleCallbackParams,
    first_param,
)
from .callback import BackendCallbackResponse, ClientMetadata, EnrichedCallbackPayload
from .identity import GoogleCredentials, GoogleProfile, IdentitySession
from .payment import (
    NO_SIGNATURE,
    VERIFIED_STATUS,
    PaymentCompletionRequest,
    PaymentOutcome,
    PaymentVerificationRequest,
    PaymentVerificationResponse,
)

__all__ = [
    "AUTHORIZATION_REQUEST_FIELDS",
    "AuthorizationRequest",
    "BackendCallbackResponse",
    "ClientMetadata",
    "DEFAULT_SCOPE",
    "EnrichedCallbackPayload",
    "GoogleCallbackParams",
    "GoogleCredentials",
    "GoogleProfile",
    "IdentitySession",
    "NO_SIGNATURE",
    "PaymentCompletionRequest",
    "PaymentOutcome",
    "PaymentVerificationRequest",
    "PaymentVerificationResponse",
    "VERIFIED_STATUS",
    "first_param",
]

"""
Payment checkpoint between identity verification and the final redirect.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable
from urllib.parse import urlsplit

from app.clients.payment_verification import (
    PaymentVerificationClient,
    PaymentVerificationError,
)
from app.core.config import PaymentSettings
from app.core.errors import FlowError
from app.schemas import (
    PaymentCompletionRequest,
    PaymentOutcome,
    PaymentVerificationRequest,
)

logger = logging.getLogger(__name__)

VERIFICATION_FAILED_MESSAGE = "Payment verification failed"
REDIRECT_NOT_ALLOWED_MESSAGE = "Invalid OAuth request: redirect target is not allowed"


class RedirectPolicy:
    """Decide whether the final redirect may target a URI.

    An empty allow-list accepts any absolute http(s) URI.
    """

    def __init__(self, allowed_origins: Iterable[str] = ()) -> None:
        self._allowed = {origin.rstrip("/").lower() for origin in allowed_origins}

    def is_allowed(self, uri: str) -> bool:
        parts = urlsplit(uri)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return False
        if not self._allowed:
            return True
        return f"{parts.scheme}://{parts.netloc}".lower() in self._allowed

    def ensure_allowed(self, uri: str) -> str:
        if not self.is_allowed(uri):
            logger.warning("Refusing redirect to %s", uri)
            raise FlowError.malformed_request(REDIRECT_NOT_ALLOWED_MESSAGE)
        return uri


class PaymentGate:
    """Build checkout options and release the redirect on verified payment."""

    def __init__(
        self,
        settings: PaymentSettings,
        verification_client: PaymentVerificationClient,
        redirect_policy: RedirectPolicy,
    ) -> None:
        self._settings = settings
        self._verifier = verification_client
        self._policy = redirect_policy

    def checkout_options(self, redirect_uri: str | None) -> Dict[str, Any]:
        """Options for the Razorpay checkout widget on the payment page."""
        if not redirect_uri:
            raise FlowError.malformed_request()
        self._policy.ensure_allowed(redirect_uri)
        return {
            "key": self._settings.razorpay_key_id,
            "amount": self._settings.amount,
            "currency": self._settings.currency,
            "name": self._settings.product_name,
            "description": self._settings.description,
            "prefill": {"email": self._settings.prefill_email},
            "theme": {"color": self._settings.theme_color},
            "retry": {"enabled": True, "max_count": self._settings.retry_max_count},
        }

    async def complete(self, completion: PaymentCompletionRequest) -> PaymentOutcome:
        """Verify a checkout result; only a literal success releases the redirect."""
        redirect_uri = self._policy.ensure_allowed(completion.redirect_uri)
        request = PaymentVerificationRequest.from_completion(completion)

        try:
            verdict = await self._verifier.verify(request)
        except PaymentVerificationError as exc:
            logger.warning(
                "Verification of payment %s did not complete: %s",
                completion.razorpay_payment_id,
                exc,
            )
            return PaymentOutcome(
                status="failed", message=f"{VERIFICATION_FAILED_MESSAGE}: {exc}"
            )

        if not verdict.verified:
            logger.warning(
                "Payment %s not verified (status=%r)",
                completion.razorpay_payment_id,
                verdict.status,
            )
            return PaymentOutcome(status="failed", message=VERIFICATION_FAILED_MESSAGE)

        logger.info("Payment %s verified", completion.razorpay_payment_id)
        return PaymentOutcome(status="success", redirect_url=redirect_uri)


__all__ = [
    "PaymentGate",
    "REDIRECT_NOT_ALLOWED_MESSAGE",
    "RedirectPolicy",
    "VERIFICATION_FAILED_MESSAGE",
]

"""Schemas for the payment gate."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

NO_SIGNATURE = "no-signature"
VERIFIED_STATUS = "success"


class PaymentCompletionRequest(BaseModel):
    """Sent by the payment page once the checkout widget reports success."""

    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    redirect_uri: str = Field(..., min_length=1)


class PaymentVerificationRequest(BaseModel):
    """Body forwarded to the payment verification endpoint."""

    razorpay_payment_id: str
    razorpay_signature: str = NO_SIGNATURE

    @classmethod
    def from_completion(cls, completion: PaymentCompletionRequest) -> "PaymentVerificationRequest":
        return cls(
            razorpay_payment_id=completion.razorpay_payment_id,
            razorpay_signature=completion.razorpay_signature or NO_SIGNATURE,
        )


class PaymentVerificationResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: Optional[Any] = None
    message: Optional[Any] = None

    @property
    def verified(self) -> bool:
        return self.status == VERIFIED_STATUS


class PaymentOutcome(BaseModel):
    """Result returned to the payment page."""

    status: str
    redirect_url: Optional[str] = None
    message: Optional[str] = None


__all__ = [
    "NO_SIGNATURE",
    "PaymentCompletionRequest",
    "PaymentOutcome",
    "PaymentVerificationRequest",
    "PaymentVerificationResponse",
    "VERIFIED_STATUS",
]

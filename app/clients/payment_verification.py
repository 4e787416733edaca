"""
HTTP client for the payment verification endpoint.
"""

from __future__ import annotations

import httpx

from app.schemas import PaymentVerificationRequest, PaymentVerificationResponse


class PaymentVerificationError(Exception):
    """Raised when the verification round-trip itself fails."""


class PaymentVerificationClient:
    """Forward checkout tokens to ``verify_url`` and parse the verdict."""

    def __init__(
        self,
        verify_url: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._verify_url = verify_url
        self._timeout = timeout
        self._transport = transport

    async def verify(
        self, request: PaymentVerificationRequest
    ) -> PaymentVerificationResponse:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._verify_url, json=request.model_dump())
        except httpx.HTTPError as exc:
            raise PaymentVerificationError(str(exc) or exc.__class__.__name__) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise PaymentVerificationError(
                f"Unreadable verification response (HTTP {response.status_code})."
            ) from exc

        if not isinstance(body, dict):
            return PaymentVerificationResponse()
        return PaymentVerificationResponse.model_validate(body)


__all__ = ["PaymentVerificationClient", "PaymentVerificationError"]

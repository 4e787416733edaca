"""
Reconcile the Google callback with the stored authorization request.

Each step is a hard gate: the first failure raises ``FlowError`` and nothing
after it runs. Once the stored request has been read, any later failure
clears it so a restart begins from a clean slate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from app.clients.authorization_backend import (
    AuthorizationBackendClient,
    BackendCallbackError,
)
from app.clients.google_auth import (
    GoogleOAuthClient,
    OAuthProfileError,
    OAuthStateEncoder,
    OAuthStateError,
    OAuthTokenExchangeError,
)
from app.core.errors import (
    BACKEND_UNREACHABLE_MESSAGE,
    IDENTITY_FAILURE_MESSAGE,
    FlowError,
    FlowErrorKind,
)
from app.schemas import (
    AuthorizationRequest,
    BackendCallbackResponse,
    ClientMetadata,
    EnrichedCallbackPayload,
    GoogleCallbackParams,
    IdentitySession,
)
from app.services.flow_context import FlowContextStore

PAYMENT_PATH = "/payment"

logger = logging.getLogger(__name__)


def build_payment_url(redirect_uri: str) -> str:
    return f"{PAYMENT_PATH}?{urlencode({'redirect_uri': redirect_uri})}"


@dataclass(frozen=True)
class ReconciliationResult:
    payment_url: str
    request: AuthorizationRequest
    backend_response: BackendCallbackResponse


class CallbackReconciler:
    """Drive the callback leg from Google's return to the payment gate."""

    def __init__(
        self,
        store: FlowContextStore,
        oauth_client: GoogleOAuthClient,
        state_encoder: OAuthStateEncoder,
        backend_client: AuthorizationBackendClient,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._state_encoder = state_encoder
        self._backend = backend_client

    async def reconcile(
        self,
        flow_id: Optional[str],
        params: GoogleCallbackParams,
        headers: Mapping[str, str],
    ) -> ReconciliationResult:
        state_data = self._verify_state(flow_id, params)

        # Read before exchanging the code: Google codes are single use, so a
        # replayed callback must fail on the missing context.
        request = self._store.read(flow_id)
        if request is None:
            logger.info("No stored authorization request for flow %s", flow_id)
            raise FlowError.session_expired()

        try:
            session = await self._establish_session(params)
            return await self._forward(flow_id, request, session, state_data, headers)
        except Exception:
            self._store.clear(flow_id)
            raise

    def _verify_state(
        self, flow_id: Optional[str], params: GoogleCallbackParams
    ) -> dict[str, Any]:
        if params.error:
            logger.warning("Google returned an error: %s", params.error)
            raise FlowError.login_failed(params.error)
        if not params.code or not params.state:
            raise FlowError(FlowErrorKind.PROVIDER_FAILURE, IDENTITY_FAILURE_MESSAGE)

        try:
            state_data = self._state_encoder.decode(params.state)
        except OAuthStateError as exc:
            logger.warning("Rejected callback state: %s", exc)
            raise FlowError(FlowErrorKind.PROVIDER_FAILURE, IDENTITY_FAILURE_MESSAGE) from exc

        # A state minted for another browser session means the cookie that
        # keys the stored request is gone or different.
        if not flow_id or state_data.get("flow_id") != flow_id:
            logger.info("Callback state does not belong to flow %s", flow_id)
            raise FlowError.session_expired()
        return state_data

    async def _establish_session(self, params: GoogleCallbackParams) -> IdentitySession:
        try:
            return await self._oauth.establish_session(params.code)
        except (OAuthTokenExchangeError, OAuthProfileError) as exc:
            logger.warning("Google sign-in could not be completed: %s", exc)
            raise FlowError(FlowErrorKind.PROVIDER_FAILURE, IDENTITY_FAILURE_MESSAGE) from exc

    async def _forward(
        self,
        flow_id: str,
        request: AuthorizationRequest,
        session: IdentitySession,
        state_data: dict[str, Any],
        headers: Mapping[str, str],
    ) -> ReconciliationResult:
        metadata = ClientMetadata.from_headers(
            headers,
            screen_resolution=state_data.get("screen_resolution"),
            timezone_name=state_data.get("timezone"),
        )
        payload = EnrichedCallbackPayload.assemble(session, metadata)
        callback_url = self._backend.build_callback_url(request.query_items())

        try:
            response = await self._backend.post_callback(callback_url, payload)
        except BackendCallbackError as exc:
            if exc.responded:
                message = f"Authentication failed: {exc.status_code} {exc.detail}"
            else:
                message = BACKEND_UNREACHABLE_MESSAGE
            raise FlowError(FlowErrorKind.TRANSPORT_FAILURE, message) from exc

        if response.reports_failure:
            reason = response.message or "the authorization service refused the request"
            logger.warning("Backend reported failure for flow %s: %s", flow_id, reason)
            raise FlowError(
                FlowErrorKind.VERIFICATION_FAILURE, f"Authentication failed: {reason}"
            )

        self._store.clear(flow_id)
        if response.redirect_url:
            logger.info("Backend suggested redirect %s; routing through payment", response.redirect_url)
        logger.info("Flow %s reconciled; forwarding to payment", flow_id)
        return ReconciliationResult(
            payment_url=build_payment_url(request.redirect_uri),
            request=request,
            backend_response=response,
        )


__all__ = [
    "CallbackReconciler",
    "PAYMENT_PATH",
    "ReconciliationResult",
    "build_payment_url",
]

"""Hand the user over to Google for sign-in."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from app.clients.google_auth import GoogleOAuthClient, OAuthStateEncoder
from app.core.errors import FlowError
from app.schemas import AuthorizationRequest
from app.services.flow_context import FlowContextStore
from app.services.payment_gate import RedirectPolicy

logger = logging.getLogger(__name__)


class IdentityDelegate:
    """Persist the captured request and build the Google consent URL."""

    def __init__(
        self,
        store: FlowContextStore,
        oauth_client: GoogleOAuthClient,
        state_encoder: OAuthStateEncoder,
        redirect_policy: Optional[RedirectPolicy] = None,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._state_encoder = state_encoder
        self._policy = redirect_policy or RedirectPolicy()

    def begin(
        self,
        flow_id: str,
        request: AuthorizationRequest,
        *,
        screen_resolution: Optional[str] = None,
        timezone_name: Optional[str] = None,
    ) -> str:
        if not request.is_valid:
            raise FlowError.malformed_request()
        # Reject the final target before any Google token is issued.
        self._policy.ensure_allowed(request.redirect_uri)

        self._store.write(flow_id, request)

        state = self._state_encoder.encode(
            {
                "nonce": uuid.uuid4().hex,
                "flow_id": flow_id,
                "screen_resolution": screen_resolution,
                "timezone": timezone_name,
            }
        )
        authorization_url = self._oauth.build_authorization_url(state=state)

        logger.info("Delegating flow %s to Google for client %s", flow_id, request.client_id)
        return authorization_url


__all__ = ["IdentityDelegate"]

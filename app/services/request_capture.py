"""Capture and validate the inbound authorization request."""

from __future__ import annotations

import logging
from typing import Mapping

from app.core.errors import FlowError
from app.schemas import AuthorizationRequest

AUTHORIZE_PATH = "/authorize"

logger = logging.getLogger(__name__)


def capture_authorization_request(
    path: str, query: Mapping[str, str]
) -> AuthorizationRequest:
    """Build an ``AuthorizationRequest`` from the authorize entry point's query.

    Values are taken verbatim; only standard query parsing has been applied.
    Raises ``FlowError`` when the request is invalid. Nothing is persisted
    here: the flow context is written when the user delegates to Google.
    """
    if path.rstrip("/") != AUTHORIZE_PATH:
        raise ValueError(f"{path!r} is not the authorize entry point.")

    request = AuthorizationRequest.from_params(query)
    if not request.is_valid:
        logger.info(
            "Rejected authorization request (client_id=%s, response_type=%s)",
            request.client_id,
            request.response_type,
        )
        raise FlowError.malformed_request()

    logger.info("Captured authorization request for client %s", request.client_id)
    return request


__all__ = ["AUTHORIZE_PATH", "capture_authorization_request"]

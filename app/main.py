"""
FastAPI application entrypoint for the authorization relay.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import Response

from app.api.routes import render_error, router as relay_router
from app.core.config import get_settings
from app.core.errors import FlowError
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def _flow_error_handler(request: Request, exc: FlowError) -> Response:
    logger.warning("Flow ended with %s: %s", exc.kind.value, exc.message)
    return render_error(request, exc)


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)
    if not settings.security.allowed_redirect_origins:
        logger.warning(
            "ALLOWED_REDIRECT_ORIGINS is empty; final redirects accept any http(s) origin."
        )

    app = FastAPI(
        title="OAuth Payment Relay",
        version="0.1.0",
        description="Relays Google sign-in to an authorization backend behind a payment gate.",
    )
    app.add_exception_handler(FlowError, _flow_error_handler)
    app.include_router(relay_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]

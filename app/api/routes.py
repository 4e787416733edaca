"""
FastAPI routes for the authorization relay.

The authorize, callback and payment pages are the states of one flow; each
route asks ``resolve_flow_state`` which state the navigation lands in.
"""

from __future__ import annotations

import logging
import secrets
from http import HTTPStatus
from pathlib import Path
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from app.core.config import AppSettings, PaymentSettings
from app.core.errors import FlowError
from app.dependencies import (
    get_app_settings,
    get_callback_reconciler,
    get_flow_context_store,
    get_identity_delegate,
    get_payment_gate,
    get_payment_settings,
)
from app.schemas import (
    AuthorizationRequest,
    GoogleCallbackParams,
    PaymentCompletionRequest,
    first_param,
)
from app.services import (
    CallbackReconciler,
    FlowContextStore,
    IdentityDelegate,
    PaymentGate,
)
from app.services.flow_state import (
    Authorize,
    Error,
    Payment,
    resolve_flow_state,
)

router = APIRouter()
logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))


def _flow_id(request: Request, settings: AppSettings) -> Optional[str]:
    return request.cookies.get(settings.security.flow_cookie_name)


def _set_flow_cookie(response: Response, flow_id: str, settings: AppSettings) -> None:
    # No max_age: the cookie lives for the browser session only.
    response.set_cookie(
        settings.security.flow_cookie_name,
        flow_id,
        httponly=True,
        samesite="lax",
        secure=settings.security.flow_cookie_secure,
        path="/",
    )


def render_error(request: Request, error: FlowError) -> Response:
    return templates.TemplateResponse(
        request,
        "error.html",
        {"message": error.message, "kind": error.kind.value},
        status_code=error.status_code,
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/")
async def index(request: Request) -> Response:
    return templates.TemplateResponse(request, "index.html", {"path": request.url.path})


@router.get("/authorize")
async def authorize_page(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Response:
    """Capture the inbound authorization request and offer Google sign-in."""
    state = resolve_flow_state(request.url.path, request.query_params, None)
    if isinstance(state, Error):
        return render_error(request, state.error)
    if not isinstance(state, Authorize):
        return RedirectResponse(url="/", status_code=HTTPStatus.SEE_OTHER)

    response = templates.TemplateResponse(
        request, "authorize.html", {"oauth": state.request}
    )
    flow_id = _flow_id(request, settings)
    if not flow_id:
        _set_flow_cookie(response, secrets.token_urlsafe(24), settings)
    return response


@router.post("/authorize/login")
async def start_identity_delegation(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    delegate: Annotated[IdentityDelegate, Depends(get_identity_delegate)],
    client_id: Annotated[Optional[str], Form()] = None,
    redirect_uri: Annotated[Optional[str], Form()] = None,
    response_type: Annotated[Optional[str], Form()] = None,
    state: Annotated[Optional[str], Form()] = None,
    code_challenge: Annotated[Optional[str], Form()] = None,
    code_challenge_method: Annotated[Optional[str], Form()] = None,
    scope: Annotated[Optional[str], Form()] = None,
    screen_resolution: Annotated[Optional[str], Form()] = None,
    timezone: Annotated[Optional[str], Form()] = None,
) -> Response:
    """Persist the captured request and send the browser to Google."""
    oauth_request = AuthorizationRequest(
        client_id=client_id or None,
        redirect_uri=redirect_uri or None,
        response_type=response_type or None,
        state=state or None,
        code_challenge=code_challenge or None,
        code_challenge_method=code_challenge_method or None,
        scope=scope or None,
    )

    flow_id = _flow_id(request, settings) or secrets.token_urlsafe(24)
    authorization_url = delegate.begin(
        flow_id,
        oauth_request,
        screen_resolution=screen_resolution,
        timezone_name=timezone,
    )
    response = RedirectResponse(url=authorization_url, status_code=HTTPStatus.SEE_OTHER)
    _set_flow_cookie(response, flow_id, settings)
    return response


@router.get("/auth/callback")
async def handle_google_callback(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    reconciler: Annotated[CallbackReconciler, Depends(get_callback_reconciler)],
    store: Annotated[FlowContextStore, Depends(get_flow_context_store)],
) -> Response:
    """Reconcile Google's return with the stored request and forward to payment."""
    flow_id = _flow_id(request, settings)
    stored = store.read(flow_id) if flow_id else None
    state = resolve_flow_state(request.url.path, request.query_params, stored)
    if isinstance(state, Error):
        return render_error(request, state.error)

    params = GoogleCallbackParams(
        code=first_param(request.query_params, "code"),
        state=first_param(request.query_params, "state"),
        error=first_param(request.query_params, "error"),
    )
    result = await reconciler.reconcile(flow_id, params, request.headers)
    return RedirectResponse(url=result.payment_url, status_code=HTTPStatus.SEE_OTHER)


@router.get("/payment")
async def payment_page(
    request: Request,
    gate: Annotated[PaymentGate, Depends(get_payment_gate)],
    payment_settings: Annotated[PaymentSettings, Depends(get_payment_settings)],
) -> Response:
    """Render the fixed-price checkout for the forwarded redirect target."""
    state = resolve_flow_state(request.url.path, request.query_params, None)
    if isinstance(state, Error):
        return render_error(request, state.error)
    if not isinstance(state, Payment):
        return RedirectResponse(url="/", status_code=HTTPStatus.SEE_OTHER)

    checkout_options = gate.checkout_options(state.redirect_uri)
    return templates.TemplateResponse(
        request,
        "payment.html",
        {
            "redirect_uri": state.redirect_uri,
            "checkout_options": checkout_options,
            "payment": payment_settings,
        },
    )


@router.post("/payment/complete")
async def complete_payment(
    payload: PaymentCompletionRequest,
    gate: Annotated[PaymentGate, Depends(get_payment_gate)],
) -> JSONResponse:
    """Verify a checkout result and hand back the final redirect on success."""
    try:
        outcome = await gate.complete(payload)
    except FlowError as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    status_code = HTTPStatus.OK if outcome.status == "success" else HTTPStatus.PAYMENT_REQUIRED
    return JSONResponse(
        status_code=status_code,
        content=outcome.model_dump(exclude_none=True),
    )


@router.get("/restart")
async def restart_flow(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    store: Annotated[FlowContextStore, Depends(get_flow_context_store)],
) -> Response:
    """Discard in-flight state and return to the application root."""
    flow_id = _flow_id(request, settings)
    if flow_id:
        store.clear(flow_id)
        logger.info("Flow %s restarted by user", flow_id)
    return RedirectResponse(url="/", status_code=HTTPStatus.SEE_OTHER)


__all__ = ["render_error", "router", "templates"]

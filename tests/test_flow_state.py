try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from app.core.errors import SESSION_EXPIRED_MESSAGE, FlowErrorKind
from app.schemas import AuthorizationRequest
from app.services.flow_state import (
    Authorize,
    Callback,
    Error,
    Idle,
    Payment,
    resolve_flow_state,
)

VALID_QUERY = {
    "client_id": "abc",
    "redirect_uri": "https://x.test/done",
    "response_type": "code",
}


def test_authorize_path_with_valid_query() -> None:
    state = resolve_flow_state("/authorize", VALID_QUERY, None)

    assert isinstance(state, Authorize)
    assert state.request.client_id == "abc"


def test_authorize_path_with_invalid_query_is_error() -> None:
    state = resolve_flow_state("/authorize", {"client_id": "abc"}, None)

    assert isinstance(state, Error)
    assert state.error.kind is FlowErrorKind.MALFORMED_REQUEST


def test_callback_without_stored_request_is_session_expired() -> None:
    state = resolve_flow_state("/auth/callback", {"code": "c"}, None)

    assert isinstance(state, Error)
    assert state.error.kind is FlowErrorKind.SESSION_EXPIRED
    assert state.error.message == SESSION_EXPIRED_MESSAGE


def test_callback_with_stored_request() -> None:
    stored = AuthorizationRequest(**VALID_QUERY)

    state = resolve_flow_state("/auth/callback", {}, stored)

    assert state == Callback(stored)


def test_payment_requires_redirect_uri() -> None:
    assert isinstance(resolve_flow_state("/payment", {}, None), Error)
    assert resolve_flow_state(
        "/payment", {"redirect_uri": "https://x.test/done"}, None
    ) == Payment("https://x.test/done")


def test_other_paths_are_idle() -> None:
    assert resolve_flow_state("/", {}, None) == Idle("/")
    assert resolve_flow_state("/elsewhere/", {}, None) == Idle("/elsewhere")

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import pytest
from starlette.datastructures import QueryParams

from app.core.errors import MALFORMED_REQUEST_MESSAGE, FlowError, FlowErrorKind
from app.schemas import AuthorizationRequest
from app.services.request_capture import capture_authorization_request


def test_capture_extracts_minimal_request() -> None:
    request = capture_authorization_request(
        "/authorize",
        {
            "client_id": "abc",
            "redirect_uri": "https://x.test/done",
            "response_type": "code",
        },
    )

    assert request == AuthorizationRequest(
        client_id="abc", redirect_uri="https://x.test/done", response_type="code"
    )
    assert request.state is None
    assert request.code_challenge is None
    assert request.code_challenge_method is None
    assert request.scope is None
    assert request.display_scope == "scrape"


def test_capture_keeps_values_verbatim() -> None:
    request = capture_authorization_request(
        "/authorize",
        {
            "client_id": " Client ",
            "redirect_uri": "https://x.test/done?next=%2Fhome",
            "response_type": "code",
            "state": "xyz",
            "code_challenge": "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM",
            "code_challenge_method": "S256",
            "scope": "read write",
            "unrelated": "ignored",
        },
    )

    assert request.client_id == " Client "
    assert request.redirect_uri == "https://x.test/done?next=%2Fhome"
    assert request.code_challenge_method == "S256"
    assert request.display_scope == "read write"


@pytest.mark.parametrize(
    "query",
    [
        {"client_id": "abc", "response_type": "code"},
        {"redirect_uri": "https://x.test/done", "response_type": "code"},
        {"client_id": "", "redirect_uri": "https://x.test/done", "response_type": "code"},
        {"client_id": "abc", "redirect_uri": "https://x.test/done", "response_type": "token"},
        {"client_id": "abc", "redirect_uri": "https://x.test/done"},
        {},
    ],
)
def test_invalid_requests_raise_malformed_request(query: dict) -> None:
    with pytest.raises(FlowError) as excinfo:
        capture_authorization_request("/authorize", query)

    assert excinfo.value.kind is FlowErrorKind.MALFORMED_REQUEST
    assert excinfo.value.message == MALFORMED_REQUEST_MESSAGE


def test_capture_rejects_other_paths() -> None:
    with pytest.raises(ValueError):
        capture_authorization_request("/auth/callback", {"client_id": "abc"})


def test_query_items_skip_empty_fields_in_declaration_order() -> None:
    request = AuthorizationRequest(
        client_id="abc",
        redirect_uri="https://x.test/done",
        response_type="code",
        state="",
        scope="read",
    )

    assert request.query_items() == [
        ("client_id", "abc"),
        ("redirect_uri", "https://x.test/done"),
        ("response_type", "code"),
        ("scope", "read"),
    ]


def test_repeated_parameters_keep_first_value() -> None:
    query = QueryParams(
        "client_id=first&client_id=second&redirect_uri=https%3A%2F%2Fx.test%2Fdone"
        "&response_type=code&response_type=token"
    )

    request = capture_authorization_request("/authorize", query)

    assert request.client_id == "first"
    assert request.response_type == "code"

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from app.clients.authorization_backend import AuthorizationBackendClient
from app.clients.google_auth import GoogleOAuthClient, OAuthStateEncoder
from app.clients.payment_verification import PaymentVerificationClient
from app.core.config import BackendSettings, PaymentSettings, get_settings
from app.core.errors import MALFORMED_REQUEST_MESSAGE, SESSION_EXPIRED_MESSAGE
from app.main import app
from app.services.payment_gate import REDIRECT_NOT_ALLOWED_MESSAGE
from app.schemas import (
    AuthorizationRequest,
    GoogleCredentials,
    GoogleProfile,
    IdentitySession,
)
from app.services import (
    CallbackReconciler,
    IdentityDelegate,
    InMemoryFlowContextStore,
    PaymentGate,
    RedirectPolicy,
)

pytestmark = pytest.mark.anyio

AUTHORIZE_QUERY = {
    "client_id": "abc",
    "redirect_uri": "https://x.test/done",
    "response_type": "code",
}


class DummyGoogleClient(GoogleOAuthClient):
    """Real URL building, canned identity session."""

    def __init__(self) -> None:
        settings = get_settings()
        super().__init__(settings.google, settings.oauth)
        self.codes: list[str] = []

    async def establish_session(self, code: str) -> IdentitySession:
        self.codes.append(code)
        return IdentitySession(
            credentials=GoogleCredentials(access_token="access", expires_in=3600),
            profile=GoogleProfile(sub="sub-1", email="ada@example.com"),
        )


class Recorder:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


@pytest.fixture()
def relay():
    from app import dependencies

    store = InMemoryFlowContextStore(ttl_seconds=60)
    encoder = OAuthStateEncoder(secret_key="route-secret", ttl_seconds=60)
    google = DummyGoogleClient()
    backend = Recorder(httpx.Response(200, json={"success": True}))
    verifier = Recorder(httpx.Response(200, json={"status": "success"}))

    backend_client = AuthorizationBackendClient(
        BackendSettings(BACKEND_BASE_URL="https://backend.example.com"),
        transport=httpx.MockTransport(backend),
    )
    verification_client = PaymentVerificationClient(
        "http://testserver/payment/verify", transport=httpx.MockTransport(verifier)
    )

    app.dependency_overrides.update(
        {
            dependencies.get_flow_context_store: lambda: store,
            dependencies.get_identity_delegate: lambda: IdentityDelegate(store, google, encoder),
            dependencies.get_callback_reconciler: lambda: CallbackReconciler(
                store, google, encoder, backend_client
            ),
            dependencies.get_payment_gate: lambda: PaymentGate(
                PaymentSettings(), verification_client, RedirectPolicy()
            ),
        }
    )

    yield store, google, backend, verifier

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


async def _delegate(client: httpx.AsyncClient) -> str:
    await client.get("/authorize", params=AUTHORIZE_QUERY)
    response = await client.post(
        "/authorize/login",
        data={**AUTHORIZE_QUERY, "screen_resolution": "1280x720", "timezone": "UTC"},
    )
    assert response.status_code == 303
    return parse_qs(urlsplit(response.headers["location"]).query)["state"][0]


async def test_authorize_page_shows_request_and_sets_flow_cookie(relay) -> None:
    store, _, _, _ = relay
    async with _client() as client:
        response = await client.get("/authorize", params={**AUTHORIZE_QUERY, "scope": "read"})

    assert response.status_code == 200
    assert "abc" in response.text
    assert "https://x.test/done" in response.text
    assert "read" in response.text
    assert "relay_flow" in response.cookies
    assert store._entries == {}


async def test_invalid_authorize_request_renders_error_without_storing(relay) -> None:
    store, _, _, _ = relay
    async with _client() as client:
        response = await client.get(
            "/authorize", params={"client_id": "abc", "response_type": "code"}
        )

    assert response.status_code == 400
    assert MALFORMED_REQUEST_MESSAGE in response.text
    assert "/restart" in response.text
    assert store._entries == {}


async def test_login_writes_context_and_redirects_to_google(relay) -> None:
    store, _, _, _ = relay
    async with _client() as client:
        await client.get("/authorize", params=AUTHORIZE_QUERY)
        response = await client.post("/authorize/login", data=AUTHORIZE_QUERY)
        flow_id = client.cookies["relay_flow"]

    assert response.status_code == 303
    location = response.headers["location"]
    assert location.startswith(GoogleOAuthClient.AUTH_BASE_URL)
    params = parse_qs(urlsplit(location).query)
    assert params["access_type"] == ["offline"]
    assert params["prompt"] == ["consent"]
    assert store.read(flow_id) == AuthorizationRequest(**AUTHORIZE_QUERY)


async def test_login_with_invalid_form_does_not_store(relay) -> None:
    store, _, _, _ = relay
    async with _client() as client:
        response = await client.post(
            "/authorize/login", data={"client_id": "abc", "response_type": "code"}
        )

    assert response.status_code == 400
    assert MALFORMED_REQUEST_MESSAGE in response.text
    assert store._entries == {}


async def test_full_flow_reaches_original_redirect(relay) -> None:
    store, google, backend, verifier = relay
    async with _client() as client:
        state = await _delegate(client)
        flow_id = client.cookies["relay_flow"]

        callback = await client.get(
            "/auth/callback", params={"code": "google-code", "state": state}
        )
        assert callback.status_code == 303
        payment_url = callback.headers["location"]
        assert payment_url == "/payment?redirect_uri=https%3A%2F%2Fx.test%2Fdone"
        assert store.read(flow_id) is None
        assert google.codes == ["google-code"]
        assert len(backend.requests) == 1

        page = await client.get(payment_url)
        assert page.status_code == 200
        assert "Proceed with Payment" in page.text
        assert "checkout.razorpay.com" in page.text

        completion = await client.post(
            "/payment/complete",
            json={"razorpay_payment_id": "pay_1", "redirect_uri": "https://x.test/done"},
        )

    assert completion.status_code == 200
    assert completion.json() == {"status": "success", "redirect_url": "https://x.test/done"}
    assert len(verifier.requests) == 1


async def test_duplicate_callback_renders_session_expired(relay) -> None:
    async with _client() as client:
        state = await _delegate(client)
        params = {"code": "google-code", "state": state}
        first = await client.get("/auth/callback", params=params)
        second = await client.get("/auth/callback", params=params)

    assert first.status_code == 303
    assert second.status_code == 400
    assert SESSION_EXPIRED_MESSAGE in second.text


async def test_callback_without_flow_cookie_is_session_expired(relay) -> None:
    async with _client() as client:
        response = await client.get("/auth/callback", params={"code": "c", "state": "s"})

    assert response.status_code == 400
    assert SESSION_EXPIRED_MESSAGE in response.text


async def test_failed_verification_keeps_user_on_payment(relay) -> None:
    _, _, _, verifier = relay
    verifier.response = httpx.Response(200, json={"status": "failed"})
    async with _client() as client:
        response = await client.post(
            "/payment/complete",
            json={"razorpay_payment_id": "pay_1", "redirect_uri": "https://x.test/done"},
        )

    assert response.status_code == 402
    body = response.json()
    assert body["status"] == "failed"
    assert "redirect_url" not in body


async def test_payment_page_requires_redirect_uri(relay) -> None:
    async with _client() as client:
        response = await client.get("/payment")

    assert response.status_code == 400
    assert MALFORMED_REQUEST_MESSAGE in response.text


async def test_restart_clears_context_and_returns_home(relay) -> None:
    store, _, _, _ = relay
    async with _client() as client:
        await _delegate(client)
        flow_id = client.cookies["relay_flow"]
        assert store.read(flow_id) is not None

        response = await client.get("/restart")

    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert store.read(flow_id) is None


async def test_healthcheck() -> None:
    async with _client() as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_root_page_reports_running() -> None:
    async with _client() as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert "OAuth relay is running" in response.text


async def test_google_declined_sign_in_renders_reason_with_restart(relay) -> None:
    store, google, backend, _ = relay
    async with _client() as client:
        state = await _delegate(client)
        response = await client.get(
            "/auth/callback", params={"error": "access_denied", "state": state}
        )

    assert response.status_code == 502
    assert "Login failed: access_denied" in response.text
    assert 'action="/restart"' in response.text
    assert google.codes == []
    assert backend.requests == []


async def test_backend_failure_renders_error_page_and_clears_context(relay) -> None:
    store, _, backend, _ = relay
    backend.response = httpx.Response(500, json={"message": "backend exploded"})
    async with _client() as client:
        state = await _delegate(client)
        flow_id = client.cookies["relay_flow"]
        response = await client.get(
            "/auth/callback", params={"code": "google-code", "state": state}
        )

    assert response.status_code == 502
    assert "Authentication failed: 500 backend exploded" in response.text
    assert 'action="/restart"' in response.text
    assert store.read(flow_id) is None


async def test_unexpected_backend_body_still_reaches_payment(relay) -> None:
    _, _, backend, _ = relay
    backend.response = httpx.Response(200, json={"status": 200, "message": ["ok"]})
    async with _client() as client:
        state = await _delegate(client)
        response = await client.get(
            "/auth/callback", params={"code": "google-code", "state": state}
        )

    assert response.status_code == 303
    assert response.headers["location"].startswith("/payment?redirect_uri=")


async def test_verified_payment_with_numeric_message_releases_redirect(relay) -> None:
    _, _, _, verifier = relay
    verifier.response = httpx.Response(200, json={"status": "success", "message": 5})
    async with _client() as client:
        response = await client.post(
            "/payment/complete",
            json={"razorpay_payment_id": "pay_1", "redirect_uri": "https://x.test/done"},
        )

    assert response.status_code == 200
    assert response.json()["redirect_url"] == "https://x.test/done"


async def test_repeated_query_parameter_uses_first_value(relay) -> None:
    async with _client() as client:
        response = await client.get(
            "/authorize",
            params=[
                ("client_id", "first-client"),
                ("client_id", "second-client"),
                ("redirect_uri", "https://x.test/done"),
                ("response_type", "code"),
            ],
        )

    assert response.status_code == 200
    assert "first-client" in response.text
    assert "second-client" not in response.text


async def test_disallowed_redirect_is_refused_before_google(relay) -> None:
    from app import dependencies

    store, _, _, _ = relay
    encoder = OAuthStateEncoder(secret_key="route-secret", ttl_seconds=60)
    app.dependency_overrides[dependencies.get_identity_delegate] = lambda: IdentityDelegate(
        store,
        DummyGoogleClient(),
        encoder,
        RedirectPolicy(("https://trusted.test",)),
    )
    async with _client() as client:
        response = await client.post("/authorize/login", data=AUTHORIZE_QUERY)

    assert response.status_code == 400
    assert REDIRECT_NOT_ALLOWED_MESSAGE in response.text
    assert 'action="/restart"' in response.text
    assert store._entries == {}

"""
Terminal flow errors surfaced to the user with a single restart affordance.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus

MALFORMED_REQUEST_MESSAGE = "Invalid OAuth request: Missing required parameters"
IDENTITY_FAILURE_MESSAGE = "Failed to authenticate with Google."
LOGIN_FAILED_PREFIX = "Login failed"
SESSION_EXPIRED_MESSAGE = "OAuth session expired. Please try again."
BACKEND_UNREACHABLE_MESSAGE = (
    "Authentication failed: unable to reach the authorization service."
)


class FlowErrorKind(str, Enum):
    """Failure classes a relay attempt can end in."""

    MALFORMED_REQUEST = "malformed_request"
    PROVIDER_FAILURE = "provider_failure"
    SESSION_EXPIRED = "session_expired"
    TRANSPORT_FAILURE = "transport_failure"
    VERIFICATION_FAILURE = "verification_failure"


_DEFAULT_STATUS = {
    FlowErrorKind.MALFORMED_REQUEST: HTTPStatus.BAD_REQUEST,
    FlowErrorKind.PROVIDER_FAILURE: HTTPStatus.BAD_GATEWAY,
    FlowErrorKind.SESSION_EXPIRED: HTTPStatus.BAD_REQUEST,
    FlowErrorKind.TRANSPORT_FAILURE: HTTPStatus.BAD_GATEWAY,
    FlowErrorKind.VERIFICATION_FAILURE: HTTPStatus.PAYMENT_REQUIRED,
}


class FlowError(Exception):
    """Raised when the current attempt cannot continue.

    There is no partial retry state; the only recovery offered to the user is
    a full restart of the flow.
    """

    def __init__(
        self,
        kind: FlowErrorKind,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = int(status_code or _DEFAULT_STATUS[kind])

    @classmethod
    def malformed_request(cls, message: str = MALFORMED_REQUEST_MESSAGE) -> "FlowError":
        return cls(FlowErrorKind.MALFORMED_REQUEST, message)

    @classmethod
    def login_failed(cls, reason: str) -> "FlowError":
        return cls(FlowErrorKind.PROVIDER_FAILURE, f"{LOGIN_FAILED_PREFIX}: {reason}")

    @classmethod
    def session_expired(cls) -> "FlowError":
        return cls(FlowErrorKind.SESSION_EXPIRED, SESSION_EXPIRED_MESSAGE)

    def to_dict(self) -> dict:
        return {"status": "failed", "kind": self.kind.value, "message": self.message}

    def __repr__(self) -> str:
        return f"FlowError(kind={self.kind.value!r}, message={self.message!r})"


__all__ = [
    "BACKEND_UNREACHABLE_MESSAGE",
    "FlowError",
    "FlowErrorKind",
    "IDENTITY_FAILURE_MESSAGE",
    "LOGIN_FAILED_PREFIX",
    "MALFORMED_REQUEST_MESSAGE",
    "SESSION_EXPIRED_MESSAGE",
]

"""
HTTP client for the backend authorization service.
"""

from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import urlencode

import httpx

from app.core.config import BackendSettings
from app.schemas import BackendCallbackResponse, EnrichedCallbackPayload

logger = logging.getLogger(__name__)


class BackendCallbackError(Exception):
    """Raised when the callback POST does not complete.

    ``status_code`` is ``None`` when no response was received at all (network
    failure or timeout).
    """

    def __init__(
        self, message: str, *, status_code: int | None = None, detail: str | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    @property
    def responded(self) -> bool:
        return self.status_code is not None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase or "request rejected"


class AuthorizationBackendClient:
    """POST enriched callbacks to ``{base_url}/callback``."""

    CALLBACK_PATH = "/callback"

    def __init__(
        self,
        settings: BackendSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.base_url.rstrip("/")
        self._timeout = settings.timeout_seconds
        self._transport = transport

    def build_callback_url(self, query_items: Iterable[tuple[str, str]]) -> str:
        url = f"{self._base_url}{self.CALLBACK_PATH}"
        query = urlencode(list(query_items))
        return f"{url}?{query}" if query else url

    async def post_callback(
        self,
        callback_url: str,
        payload: EnrichedCallbackPayload,
    ) -> BackendCallbackResponse:
        body = payload.model_dump(mode="json")
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    callback_url,
                    json=body,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(exc.response)
            logger.warning(
                "Backend callback rejected with status %s: %s",
                exc.response.status_code,
                detail,
            )
            raise BackendCallbackError(
                "Backend rejected the callback.",
                status_code=exc.response.status_code,
                detail=detail,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Backend callback transport failure: %s", exc.__class__.__name__)
            raise BackendCallbackError("Backend callback did not complete.") from exc

        try:
            content = response.json()
        except ValueError:
            content = None
        return BackendCallbackResponse.from_body(content)


__all__ = ["AuthorizationBackendClient", "BackendCallbackError"]

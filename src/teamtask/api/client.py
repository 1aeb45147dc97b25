# src/teamtask/api/client.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from ..core.errors import ApiError, MalformedResponse, NetworkFailure, RequestRejected
from ..core.ports import JsonPayload

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An error occurred"


def _timeout(seconds: float) -> httpx.Timeout:
    """Connect quickly, allow the full budget for reads."""
    connect = min(5.0, seconds)
    return httpx.Timeout(connect=connect, read=seconds, write=10.0, pool=connect)


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return DEFAULT_ERROR_MESSAGE, None
    if isinstance(body, dict):
        msg = body.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg, body
    return DEFAULT_ERROR_MESSAGE, body


class HttpApiClient:
    """
    httpx-backed implementation of the ApiClient port.

    Session auth relies on an HTTP-only cookie set by the server; the
    AsyncClient cookie jar carries it on every request. Retries are not
    attempted here: stores decide what a failure means.
    """

    def __init__(
            self,
            base_url: str,
            *,
            timeout_seconds: float = 30.0,
            cookie_name: str = "sessionId",
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cookie_name = cookie_name
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=_timeout(timeout_seconds),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Any) -> HttpApiClient:
        return cls(
            str(settings.api_base_url),
            timeout_seconds=float(getattr(settings, "api_timeout_seconds", 30.0)),
            cookie_name=str(getattr(settings, "session_cookie_name", "sessionId")),
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    @property
    def has_session_cookie(self) -> bool:
        return self._cookie_name in self._client.cookies

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
            self,
            method: str,
            path: str,
            body: Mapping[str, Any] | None = None,
            query: Mapping[str, str] | None = None,
    ) -> JsonPayload:
        url = path if path.startswith("/") else f"/{path}"
        try:
            response = await self._client.request(
                method.upper(),
                url,
                json=dict(body) if body is not None else None,
                params=dict(query) if query else None,
            )
        except httpx.TransportError as e:
            # Covers connect/read timeouts and refused connections.
            logger.error("Network error on %s %s: %s", method.upper(), url, e)
            raise NetworkFailure() from e

        if response.is_error:
            message, data = _error_message(response)
            if response.status_code == 401:
                logger.warning("Unauthorized request %s %s: %s", method.upper(), url, message)
            else:
                logger.info("API %s %s -> %s: %s", method.upper(), url, response.status_code, message)
            raise RequestRejected(response.status_code, message, data)

        if response.status_code == 204 or not response.content:
            return {"data": None}

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponse(response.status_code, "Server returned invalid JSON.") from e
        if not isinstance(payload, dict):
            raise MalformedResponse(response.status_code, "Server returned an unexpected payload.", payload)
        return payload


def unwrap(payload: JsonPayload, key: str | None = None) -> Any:
    """
    Extract payload["data"] (and optionally payload["data"][key]).

    Raises MalformedResponse when the envelope does not have the expected shape.
    """
    if not isinstance(payload, dict) or "data" not in payload:
        raise MalformedResponse(200, "Response is missing its data envelope.", payload)
    data = payload["data"]
    if key is None:
        return data
    if not isinstance(data, dict) or key not in data:
        raise MalformedResponse(200, f"Response is missing '{key}'.", payload)
    return data[key]


def describe(exc: BaseException) -> str:
    """Human-readable message for any error a store may record."""
    if isinstance(exc, ApiError):
        return exc.message
    msg = str(exc).strip()
    return msg or exc.__class__.__name__

"""httpx transport for the items API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from app.config import Settings


AUTH = "auth"
NOT_FOUND = "not_found"
SERVER = "server"
NETWORK = "network"
CLIENT = "client"


def category_for_status(status: int | None) -> str:
    if status is None:
        return NETWORK
    if status in (401, 403):
        return AUTH
    if status == 404:
        return NOT_FOUND
    if status >= 500:
        return SERVER
    return CLIENT


@dataclass
class TransportError(Exception):
    category: str
    message: str
    status: int | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.category}: {self.message}"

    @property
    def status_label(self) -> str:
        return str(self.status) if self.status is not None else self.category


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("message", "error", "detail"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        value = errors[0].get("message")
        if isinstance(value, str) and value:
            return value
    return None


class ItemsTransport:
    """One HTTP round trip per call against ``{base_url}/items``.

    A fresh ``httpx.AsyncClient`` is opened per request so the transport is
    safe to share across event loops. ``http_transport`` lets callers route
    requests in-process (``httpx.ASGITransport`` / ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        token: str | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._http_transport = http_transport

    @classmethod
    def from_settings(cls, settings: Settings, http_transport: httpx.AsyncBaseTransport | None = None) -> "ItemsTransport":
        return cls(settings.api_url, timeout=settings.api_timeout, token=settings.api_token, http_transport=http_transport)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def request(self, method: str, path: str, params: dict | None = None, json: Any = None) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._http_transport,
            ) as client:
                response = await client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            raise TransportError(NETWORK, f"Request timed out after {self.timeout}s") from exc
        except httpx.RequestError as exc:
            raise TransportError(NETWORK, str(exc) or "Network error") from exc
        if response.status_code >= 400:
            message = _error_message(response) or response.reason_phrase or "Request failed"
            raise TransportError(category_for_status(response.status_code), message, response.status_code)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(SERVER, "Invalid JSON response", response.status_code) from exc

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from .config import API_VERSION
from .errors import InvalidResponseError, TransportError
from .models import ApiResponse

logger = logging.getLogger("subfork.transport")


class Transport(Protocol):
    """Performs a named remote call with a JSON payload."""

    async def request(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        blocking: bool = False,
    ) -> ApiResponse:
        """POST ``payload`` to ``endpoint`` and return the decoded response."""

    async def aclose(self) -> None:
        """Release any pooled connections."""


def _normalize_base_url(url: str) -> str:
    return url.rstrip("/")


def build_url(base_url: str, endpoint: str, *, api_version: str = API_VERSION) -> str:
    """Return the API url for ``endpoint``, e.g. ``https://host/api/task/create``."""
    return f"{_normalize_base_url(base_url)}/{api_version}/{endpoint.lstrip('/')}"


def _raise_for_status(url: str, response: httpx.Response) -> None:
    if 200 <= response.status_code < 300:
        return
    detail = None
    body = response.text
    if body:
        try:
            payload = json.loads(body)
            if isinstance(payload, Mapping):
                detail = payload.get("error") or payload.get("detail")
        except json.JSONDecodeError:
            detail = None
    raise TransportError(url, response.status_code, str(detail) if detail else None)


def _decode_response(url: str, response: httpx.Response) -> ApiResponse:
    _raise_for_status(url, response)
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidResponseError(url, "Response body is not valid JSON.") from exc
    if not isinstance(body, Mapping):
        raise InvalidResponseError(url, "Response body must be a JSON object.")
    return ApiResponse.model_validate(dict(body))


@dataclass(slots=True)
class HttpTransport:
    """JSON-over-HTTP transport.

    Non-blocking requests go through an ``httpx.AsyncClient``. Blocking
    requests run on a synchronous ``httpx.Client`` in a worker thread and are
    awaited by the caller before it continues.
    """

    base_url: str
    api_version: str = API_VERSION
    headers: Mapping[str, str] | None = None
    timeout_s: float | None = None
    client: httpx.AsyncClient | None = None
    sync_client: httpx.Client | None = None

    @asynccontextmanager
    async def _client_context(self):
        if self.client is not None:
            yield self.client
            return
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            yield client

    def _base_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json",
        }
        if self.headers:
            headers.update(self.headers)
        return headers

    async def request(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        blocking: bool = False,
    ) -> ApiResponse:
        url = build_url(self.base_url, endpoint, api_version=self.api_version)
        logger.debug("http_request", extra={"url": url, "blocking": blocking})
        if blocking:
            return await asyncio.to_thread(self._request_sync, url, dict(payload))
        async with self._client_context() as client:
            response = await client.post(url, json=dict(payload), headers=self._base_headers())
            return _decode_response(url, response)

    def _request_sync(self, url: str, payload: dict[str, Any]) -> ApiResponse:
        if self.sync_client is not None:
            response = self.sync_client.post(url, json=payload, headers=self._base_headers())
            return _decode_response(url, response)
        with httpx.Client(timeout=self.timeout_s) as client:
            response = client.post(url, json=payload, headers=self._base_headers())
            return _decode_response(url, response)

    async def aclose(self) -> None:
        """Release transport resources.

        Clients created per request are closed when the request ends. Injected
        ``client`` and ``sync_client`` stay open; whoever passed them in owns
        them.
        """
        logger.debug("http_transport_closed", extra={"base_url": self.base_url})


__all__ = ["HttpTransport", "Transport", "build_url"]

"""Collection accessor."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .config import VERSION
from .models import ApiResponse

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .client import Client, ResponseCallback


class Datatype:
    """CRUD proxy for the server-side collection ``name``.

    Every operation starts its request immediately and returns the request
    handle; awaiting it yields the server's :class:`ApiResponse`.
    """

    def __init__(self, client: Client, name: str) -> None:
        self.client = client
        self.name = name

    def __repr__(self) -> str:
        return f"Datatype(name={self.name!r})"

    def _payload(self, **fields: Any) -> dict[str, Any]:
        return {"collection": self.name, **fields, "version": VERSION}

    def create(
        self,
        data: Mapping[str, Any],
        callback: ResponseCallback | None = None,
    ) -> asyncio.Task[ApiResponse]:
        return self.client.call("data/create", self._payload(data=dict(data)), callback=callback)

    def delete(
        self,
        params: Mapping[str, Any],
        callback: ResponseCallback | None = None,
    ) -> asyncio.Task[ApiResponse]:
        return self.client.call("data/delete", self._payload(params=dict(params)), callback=callback)

    def find(
        self,
        params: Mapping[str, Any],
        callback: ResponseCallback | None = None,
        expand: bool = False,
        blocking: bool = False,
    ) -> asyncio.Task[ApiResponse]:
        payload = self._payload(expand=expand, params=dict(params))
        return self.client.call("data/get", payload, callback=callback, blocking=blocking)

    def update(
        self,
        id: Any,
        data: Mapping[str, Any],
        callback: ResponseCallback | None = None,
    ) -> asyncio.Task[ApiResponse]:
        return self.client.call("data/update", self._payload(id=id, data=dict(data)), callback=callback)


__all__ = ["Datatype"]

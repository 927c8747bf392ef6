"""Socket.IO implementation of the push channel."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .channel import ChannelHandler, invoke_handler

logger = logging.getLogger("subfork.channel")

NAMESPACE = "/"


def _require_socketio():
    try:
        import socketio
    except ImportError as exc:
        raise RuntimeError(
            "python-socketio is required for WebSocketChannel. Install with `pip install subfork[events]`."
        ) from exc
    return socketio


class WebSocketChannel:
    """Binds signature handlers to events on a Socket.IO connection.

    The event server emits one event per signature with the payload as its
    first argument. Handlers get an ``ack`` callable; whatever it is called
    with is returned to Socket.IO, which sends it back as the acknowledgement
    when the server asked for one.
    """

    def __init__(self, url: str, sio: Any) -> None:
        self.url = url
        self._sio = sio
        self._handlers: dict[str, ChannelHandler] = {}

    @classmethod
    async def connect(cls, url: str) -> WebSocketChannel:
        socketio = _require_socketio()
        sio = socketio.AsyncClient()
        channel = cls(url, sio)
        sio.on("disconnect", channel._on_disconnect)
        await sio.connect(url)
        logger.info("channel_connected", extra={"url": url})
        return channel

    @property
    def connected(self) -> bool:
        return bool(self._sio.connected)

    def on(self, signature: str, handler: ChannelHandler) -> None:
        self._handlers[signature] = handler

        async def _event(*args: Any) -> Any:
            return await self.dispatch(signature, *args)

        self._sio.on(signature, _event)

    def off(self, signature: str) -> None:
        self._handlers.pop(signature, None)
        self._sio.handlers.get(NAMESPACE, {}).pop(signature, None)

    async def dispatch(self, signature: str, *args: Any) -> Any:
        """Run the handler for ``signature`` with a Socket.IO event's arguments.

        Returns the acknowledgement arguments as a tuple, or ``None`` when the
        handler did not acknowledge.
        """
        handler = self._handlers.get(signature)
        if handler is None:
            logger.debug("channel_message_unrouted", extra={"signature": signature})
            return None
        payload = args[0] if args else None
        acked: list[Any] = []

        def ack(*values: Any) -> None:
            acked.extend(values)

        await invoke_handler(signature, handler, payload if isinstance(payload, Mapping) else {}, ack)
        return tuple(acked) if acked else None

    def _on_disconnect(self, *args: Any) -> None:
        logger.warning("channel_disconnected", extra={"url": self.url})

    async def close(self) -> None:
        if self._sio.connected:
            await self._sio.disconnect()


__all__ = ["WebSocketChannel"]

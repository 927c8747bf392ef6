"""Push-channel abstraction and lazy loading."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from .config import DEFAULT_WAIT_INTERVAL_S
from .errors import WaitTimeoutError

logger = logging.getLogger("subfork.channel")

Ack = Callable[..., Any]
ChannelHandler = Callable[[Mapping[str, Any], Ack | None], Any]
ChannelFactory = Callable[[], Awaitable["Channel"]]


class Channel(Protocol):
    """Publish/subscribe transport keyed by string signatures."""

    @property
    def connected(self) -> bool: ...

    def on(self, signature: str, handler: ChannelHandler) -> None: ...

    def off(self, signature: str) -> None: ...

    async def close(self) -> None: ...


async def invoke_handler(
    signature: str,
    handler: ChannelHandler,
    payload: Mapping[str, Any],
    ack: Ack | None = None,
) -> None:
    """Run ``handler`` for one delivery, awaiting it when it is a coroutine."""
    try:
        result = handler(payload, ack)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("channel_handler_failed", extra={"signature": signature})


async def wait_for(
    condition: Callable[[], bool],
    *,
    interval_s: float = DEFAULT_WAIT_INTERVAL_S,
    timeout_s: float | None = None,
) -> None:
    """Poll ``condition`` every ``interval_s`` until it holds.

    Raises :class:`WaitTimeoutError` once ``timeout_s`` elapses. Cancelling the
    awaiting task stops the poll.
    """
    loop = asyncio.get_running_loop()
    deadline = None if timeout_s is None else loop.time() + timeout_s
    while not condition():
        if deadline is not None and loop.time() >= deadline:
            raise WaitTimeoutError(timeout_s)
        await asyncio.sleep(interval_s)


class InMemoryChannel:
    """Process-local channel; ``publish`` delivers to the registered handler."""

    def __init__(self) -> None:
        self._handlers: dict[str, ChannelHandler] = {}
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def signatures(self) -> list[str]:
        return list(self._handlers)

    def on(self, signature: str, handler: ChannelHandler) -> None:
        self._handlers[signature] = handler

    def off(self, signature: str) -> None:
        self._handlers.pop(signature, None)

    async def publish(self, signature: str, payload: Mapping[str, Any], ack: Ack | None = None) -> bool:
        handler = self._handlers.get(signature)
        if handler is None:
            logger.debug("channel_message_unrouted", extra={"signature": signature})
            return False
        await invoke_handler(signature, handler, payload, ack)
        return True

    async def close(self) -> None:
        self._connected = False
        self._handlers.clear()


class ChannelLoader:
    """Creates the channel once and binds subscriptions made before it exists."""

    def __init__(self, factory: ChannelFactory, *, wait_interval_s: float = DEFAULT_WAIT_INTERVAL_S) -> None:
        self._factory = factory
        self._wait_interval_s = wait_interval_s
        self._channel: Channel | None = None
        self._lock = asyncio.Lock()
        self._handlers: dict[str, ChannelHandler] = {}

    @property
    def channel(self) -> Channel | None:
        return self._channel

    @property
    def loaded(self) -> bool:
        return self._channel is not None

    @property
    def connected(self) -> bool:
        return self._channel is not None and self._channel.connected

    @property
    def pending(self) -> dict[str, ChannelHandler]:
        return dict(self._handlers)

    async def load(self) -> Channel:
        async with self._lock:
            if self._channel is None:
                channel = await self._factory()
                for signature, handler in self._handlers.items():
                    channel.on(signature, handler)
                self._channel = channel
                logger.debug("channel_loaded", extra={"subscriptions": len(self._handlers)})
        return self._channel

    def subscribe(self, signature: str, handler: ChannelHandler) -> None:
        self._handlers[signature] = handler
        if self._channel is not None:
            self._channel.on(signature, handler)
        logger.debug(
            "channel_subscribed",
            extra={"signature": signature, "bound": self._channel is not None},
        )

    def unsubscribe(self, signature: str) -> None:
        self._handlers.pop(signature, None)
        if self._channel is not None:
            self._channel.off(signature)

    async def wait_ready(self, *, timeout_s: float | None = None) -> Channel:
        await wait_for(lambda: self._channel is not None, interval_s=self._wait_interval_s, timeout_s=timeout_s)
        assert self._channel is not None
        return self._channel

    async def close(self) -> None:
        if self._channel is not None:
            await self._channel.close()
            self._channel = None


__all__ = [
    "Ack",
    "Channel",
    "ChannelFactory",
    "ChannelHandler",
    "ChannelLoader",
    "InMemoryChannel",
    "invoke_handler",
    "wait_for",
]

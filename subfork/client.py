"""Top-level Subfork client."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Coroutine, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from .cache import AccessorCache
from .channel import Channel, ChannelFactory, ChannelLoader
from .config import VERSION, SubforkConfig
from .data import Datatype
from .models import ApiResponse, Session
from .tasks import TaskQueue, event_handler, session_signature
from .transport import HttpTransport, Transport
from .users import User
from .websocket import WebSocketChannel

logger = logging.getLogger("subfork.client")

T = TypeVar("T")

ResponseCallback = Callable[[ApiResponse], Any]


class Client:
    """Entry point: owns the session, accessor cache, transport and channel.

    Usage::

        async with Client({"host": "test.fork.io"}) as client:
            queue = client.task("test")
            queue.on("done", lambda event: print(event.message))
            task = await queue.create({"t": 2})
    """

    def __init__(
        self,
        config: SubforkConfig | Mapping[str, Any] | None = None,
        *,
        transport: Transport | None = None,
        channel_factory: ChannelFactory | None = None,
    ) -> None:
        self.config = SubforkConfig.from_value(config)
        self.cache = AccessorCache()
        self.session = Session()
        self.transport: Transport = transport or HttpTransport(
            base_url=self.config.base_url,
            api_version=self.config.api_version,
            timeout_s=self.config.timeout_s,
        )
        self.channels = ChannelLoader(
            channel_factory or self._connect_channel,
            wait_interval_s=self.config.wait_interval_s,
        )
        self._pending: set[asyncio.Task[Any]] = set()
        self._user_lock = asyncio.Lock()

    async def __aenter__(self) -> Client:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def sessionid(self) -> str | None:
        return self.session.sessionid

    async def _connect_channel(self) -> Channel:
        return await WebSocketChannel.connect(self.config.events_url)

    async def connect(self) -> Session:
        """Bootstrap the session, then load the event channel."""
        self.session = await self.get_session_data()
        if self.session.established:
            logger.debug("session_established", extra={"sessionid": self.session.sessionid})
            for event_name, callback in self.config.on.items():
                signature = session_signature(self.session.sessionid, event_name)
                self.channels.subscribe(signature, event_handler(self, event_name, callback))
        try:
            await self.channels.load()
        except Exception as exc:
            logger.warning(
                "channel_load_failed",
                extra={"url": self.config.events_url, "error": str(exc), "error_type": exc.__class__.__name__},
            )
            return self.session
        logger.info("channel_ready", extra={"host": self.config.host})
        return self.session

    async def get_session_data(self) -> Session:
        payload = {"source": self.config.host, "version": self.config.api_version}
        response = await self.request("get_session_data", payload, blocking=True)
        if not (response.success and response.data):
            logger.error("session_bootstrap_failed", extra={"host": self.config.host, "error": response.error})
            return Session()
        if not isinstance(response.data, Mapping):
            logger.warning("session_data_malformed", extra={"host": self.config.host})
            return Session()
        try:
            return Session.model_validate(dict(response.data))
        except ValidationError as exc:
            logger.warning("session_data_malformed", extra={"host": self.config.host, "error": str(exc)})
            return Session()

    async def request(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        blocking: bool = False,
    ) -> ApiResponse:
        return await self.transport.request(endpoint, payload, blocking=blocking)

    async def notify(self, callback: Callable[[T], Any] | None, value: T) -> None:
        if callback is None:
            return
        result = callback(value)
        if inspect.isawaitable(result):
            await result

    def spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Schedule ``coro`` and keep a reference until it finishes."""
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def call(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        callback: ResponseCallback | None = None,
        blocking: bool = False,
    ) -> asyncio.Task[ApiResponse]:
        async def _call() -> ApiResponse:
            response = await self.request(endpoint, payload, blocking=blocking)
            await self.notify(callback, response)
            return response

        return self.spawn(_call())

    def data(self, name: str) -> Datatype:
        return self.cache.get_or_add("data", name, lambda: Datatype(self, name))

    def task(self, name: str) -> TaskQueue:
        return self.cache.get_or_add("task", name, lambda: TaskQueue(self, name))

    async def user(self, username: str) -> User | None:
        cached = self.cache.get("user", username)
        if cached is not None:
            return cached
        async with self._user_lock:
            cached = self.cache.get("user", username)
            if cached is not None:
                return cached
            payload = {"username": username, "version": VERSION}
            response = await self.request("user/get", payload, blocking=True)
            if not response.success:
                logger.warning("user_get_failed", extra={"username": username, "error": response.error})
                return None
            data = response.data or {}
            if not isinstance(data, Mapping):
                logger.warning("user_data_malformed", extra={"username": username})
                return None
            user = User(dict(data))
            self.cache.add("user", username, user)
            return user

    def is_connected(self) -> bool:
        return self.channels.connected

    async def ready(
        self,
        callback: Callable[[], Any] | None = None,
        *,
        timeout_s: float | None = None,
    ) -> None:
        """Wait until the event channel exists, then run ``callback`` once."""
        await self.channels.wait_ready(timeout_s=timeout_s)
        if callback is not None:
            result = callback()
            if inspect.isawaitable(result):
                await result

    async def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self.channels.close()
        await self.transport.aclose()


__all__ = ["Client", "ResponseCallback"]

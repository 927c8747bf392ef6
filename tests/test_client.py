from __future__ import annotations

import asyncio

import pytest

from subfork import (
    Client,
    Event,
    InMemoryChannel,
    SessionNotEstablishedError,
    SubforkConfig,
    WaitTimeoutError,
)
from subfork.data import Datatype
from subfork.tasks import TaskQueue

from .conftest import SESSION_ID
from .fakes import FakeTransport


def test_accessors_are_cached_per_name(client: Client) -> None:
    queue = client.task("test")
    assert isinstance(queue, TaskQueue)
    assert client.task("test") is queue
    assert client.task("other") is not queue

    rows = client.data("rows")
    assert isinstance(rows, Datatype)
    assert client.data("rows") is rows
    assert client.cache.get("task", "test") is queue


@pytest.mark.asyncio
async def test_connect_bootstraps_session_before_loading_channel(
    client: Client, transport: FakeTransport
) -> None:
    assert client.sessionid is None
    assert not client.is_connected()

    session = await client.connect()

    assert session.sessionid == SESSION_ID
    assert session.model_extra == {"plan": "free"}
    [call] = transport.calls_to("get_session_data")
    assert call.payload == {"source": "app.example.com", "version": "api"}
    assert call.blocking is True
    assert client.is_connected()


@pytest.mark.asyncio
async def test_default_host_comes_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUBFORK_HOST", "app.example.com")
    monkeypatch.delenv("SUBFORK_PORT", raising=False)
    transport = FakeTransport()
    transport.respond("get_session_data", success=True, data={"sessionid": "abc"})

    async def _factory() -> InMemoryChannel:
        return InMemoryChannel()

    client = Client(transport=transport, channel_factory=_factory)
    await client.connect()

    assert client.config.host == "app.example.com"
    assert transport.calls[0].payload == {"source": "app.example.com", "version": "api"}
    assert client.sessionid == "abc"


@pytest.mark.asyncio
async def test_failed_bootstrap_leaves_session_empty(
    channel: InMemoryChannel, caplog: pytest.LogCaptureFixture
) -> None:
    transport = FakeTransport()
    transport.respond("get_session_data", success=False, error="unknown source")

    async def _factory() -> InMemoryChannel:
        return channel

    client = Client({"host": "bad.example.com"}, transport=transport, channel_factory=_factory)
    with caplog.at_level("ERROR", logger="subfork.client"):
        session = await client.connect()

    assert session.sessionid is None
    assert "session_bootstrap_failed" in caplog.text
    with pytest.raises(SessionNotEstablishedError):
        client.task("test").on("done", lambda event: None)


@pytest.mark.asyncio
async def test_user_is_fetched_once_and_cached(client: Client, transport: FakeTransport) -> None:
    transport.respond("user/get", success=True, data={"username": "bob", "email": "bob@example.com"})

    first, second = await asyncio.gather(client.user("bob"), client.user("bob"))

    assert first is second
    assert first is not None
    assert first.username == "bob"
    assert first.data["email"] == "bob@example.com"
    [call] = transport.calls_to("user/get")
    assert call.payload == {"username": "bob", "version": "0.1.1"}
    assert call.blocking is True


@pytest.mark.asyncio
async def test_user_failure_is_not_cached(client: Client, transport: FakeTransport) -> None:
    transport.respond("user/get", success=False, error="no such user")
    transport.respond("user/get", success=True, data={"username": "ann"})

    assert await client.user("ann") is None
    assert client.cache.get("user", "ann") is None

    user = await client.user("ann")
    assert user is not None
    assert user.username == "ann"
    assert len(transport.calls_to("user/get")) == 2


@pytest.mark.asyncio
async def test_ready_waits_for_channel_then_runs_callback_once(client: Client) -> None:
    calls: list[str] = []
    waiter = asyncio.create_task(client.ready(lambda: calls.append("ready")))

    await asyncio.sleep(0.03)
    assert calls == []

    await client.connect()
    await asyncio.wait_for(waiter, timeout=1)
    assert calls == ["ready"]


@pytest.mark.asyncio
async def test_ready_times_out_without_channel(client: Client) -> None:
    with pytest.raises(WaitTimeoutError):
        await client.ready(timeout_s=0.03)


@pytest.mark.asyncio
async def test_config_handlers_receive_session_events(
    transport: FakeTransport, channel: InMemoryChannel
) -> None:
    received: list[Event] = []

    async def _factory() -> InMemoryChannel:
        return channel

    config = SubforkConfig(host="app.example.com", on={"message": received.append})
    client = Client(config, transport=transport, channel_factory=_factory)
    await client.connect()

    await channel.publish(f"{SESSION_ID}:message", {"type": "user", "message": "hello"})

    [event] = received
    assert event.name == "message"
    assert event.message == "hello"


@pytest.mark.asyncio
async def test_async_context_manager_closes_transport_and_channel(
    transport: FakeTransport, channel: InMemoryChannel
) -> None:
    async def _factory() -> InMemoryChannel:
        return channel

    async with Client({"host": "app.example.com"}, transport=transport, channel_factory=_factory) as client:
        assert client.is_connected()

    assert transport.closed
    assert not channel.connected
    assert not client.is_connected()


@pytest.mark.asyncio
async def test_numeric_sessionid_is_coerced_to_string(channel: InMemoryChannel) -> None:
    transport = FakeTransport()
    transport.respond("get_session_data", success=True, data={"sessionid": 12345})

    async def _factory() -> InMemoryChannel:
        return channel

    client = Client({"host": "app.example.com"}, transport=transport, channel_factory=_factory)
    session = await client.connect()

    assert session.sessionid == "12345"
    assert client.task("test").on("done", lambda event: None) is True


@pytest.mark.asyncio
async def test_non_mapping_session_data_leaves_session_empty(
    channel: InMemoryChannel, caplog: pytest.LogCaptureFixture
) -> None:
    transport = FakeTransport()
    transport.respond("get_session_data", success=True, data="sess-1")

    async def _factory() -> InMemoryChannel:
        return channel

    client = Client({"host": "app.example.com"}, transport=transport, channel_factory=_factory)
    with caplog.at_level("WARNING", logger="subfork.client"):
        session = await client.connect()

    assert session.sessionid is None
    assert "session_data_malformed" in caplog.text


@pytest.mark.asyncio
async def test_non_mapping_user_data_is_not_cached(
    client: Client, transport: FakeTransport, caplog: pytest.LogCaptureFixture
) -> None:
    transport.respond("user/get", success=True, data=["bob"])

    with caplog.at_level("WARNING", logger="subfork.client"):
        assert await client.user("bob") is None
    assert client.cache.get("user", "bob") is None
    assert "user_data_malformed" in caplog.text


@pytest.mark.asyncio
async def test_channel_load_failure_keeps_session_usable(
    transport: FakeTransport, caplog: pytest.LogCaptureFixture
) -> None:
    async def _factory() -> InMemoryChannel:
        raise OSError("events server unreachable")

    client = Client({"host": "app.example.com", "wait_interval_s": 0.01}, transport=transport, channel_factory=_factory)
    with caplog.at_level("WARNING", logger="subfork.client"):
        session = await client.connect()

    assert session.sessionid == SESSION_ID
    assert "channel_load_failed" in caplog.text
    assert not client.is_connected()
    with pytest.raises(WaitTimeoutError):
        await client.ready(timeout_s=0.03)

    response = await client.data("rows").find({"owner": "bob"})
    assert response.success is True
    assert transport.calls_to("data/get")[0].payload["params"] == {"owner": "bob"}
    await client.close()


@pytest.mark.asyncio
async def test_async_context_manager_survives_missing_channel_library(transport: FakeTransport) -> None:
    async def _factory() -> InMemoryChannel:
        raise RuntimeError("python-socketio is required for WebSocketChannel.")

    async with Client({"host": "app.example.com"}, transport=transport, channel_factory=_factory) as client:
        assert client.sessionid == SESSION_ID
        assert not client.is_connected()

    assert transport.closed

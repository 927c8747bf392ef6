from __future__ import annotations

import pytest

from subfork import Client, InMemoryChannel

from .fakes import FakeTransport

SESSION_ID = "sess-1"


@pytest.fixture()
def transport() -> FakeTransport:
    fake = FakeTransport()
    fake.respond("get_session_data", success=True, data={"sessionid": SESSION_ID, "plan": "free"})
    return fake


@pytest.fixture()
def channel() -> InMemoryChannel:
    return InMemoryChannel()


@pytest.fixture()
def client(transport: FakeTransport, channel: InMemoryChannel) -> Client:
    async def _factory() -> InMemoryChannel:
        return channel

    return Client(
        {"host": "app.example.com", "wait_interval_s": 0.01},
        transport=transport,
        channel_factory=_factory,
    )

import pytest

import protocol
from shutdown import ShutdownCoordinator


@pytest.mark.asyncio
async def test_drain_notifies_then_closes(relay, channel_factory):
    channel = channel_factory()
    relay.connect("A", channel)
    order = []

    async def close():
        order.append(("close", len(channel.named(protocol.SERVER_SHUTDOWN))))

    coordinator = ShutdownCoordinator(relay, grace=0.01)
    assert await coordinator.drain(close) is True
    assert order == [("close", 1)]


@pytest.mark.asyncio
async def test_drain_runs_once(relay, channel_factory):
    channel = channel_factory()
    relay.connect("A", channel)
    calls = []

    async def close():
        calls.append(True)

    coordinator = ShutdownCoordinator(relay, grace=0)
    await coordinator.drain(close)
    assert await coordinator.drain(close) is False
    assert calls == [True]
    assert len(channel.named(protocol.SERVER_SHUTDOWN)) == 1

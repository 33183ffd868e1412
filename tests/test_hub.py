"""Tests for monitor.hub.BroadcastHub."""

import asyncio
import json

import pytest

from monitor.events import STDERR, make_event
from monitor.hub import BroadcastHub


def stderr_event(text: str):
    return make_event(STDERR, "s1", text=text)


@pytest.mark.asyncio
async def test_broadcast_reaches_every_observer():
    hub = BroadcastHub()
    a, b = hub.subscribe(), hub.subscribe()

    assert hub.broadcast(stderr_event("hi")) == 2

    for sub in (a, b):
        message = await asyncio.wait_for(sub.get(), 1)
        assert json.loads(message)["text"] == "hi"


@pytest.mark.asyncio
async def test_late_observer_gets_no_backlog():
    hub = BroadcastHub()
    hub.broadcast(stderr_event("early"))
    sub = hub.subscribe()
    hub.broadcast(stderr_event("late"))
    message = await asyncio.wait_for(sub.get(), 1)
    assert json.loads(message)["text"] == "late"


def test_broadcast_without_observers():
    hub = BroadcastHub()
    assert hub.broadcast(stderr_event("nobody")) == 0


@pytest.mark.asyncio
async def test_full_observer_is_dropped_without_affecting_others():
    hub = BroadcastHub(queue_size=2)
    slow = hub.subscribe()
    fast = hub.subscribe()

    delivered = []
    for i in range(3):
        delivered.append(hub.broadcast(stderr_event(str(i))))
        # fast keeps up
        delivered_msg = await asyncio.wait_for(fast.get(), 1)
        assert json.loads(delivered_msg)["text"] == str(i)

    assert delivered == [2, 2, 1]
    assert hub.observer_count == 1
    assert slow.closed

    # The dropped observer's stream terminates
    received = [m async for m in slow.messages()]
    assert all(json.loads(m)["text"] in {"0", "1"} for m in received)


@pytest.mark.asyncio
async def test_unsubscribe_ends_stream():
    hub = BroadcastHub()
    sub = hub.subscribe()
    hub.broadcast(stderr_event("x"))
    hub.unsubscribe(sub)
    hub.unsubscribe(sub)  # second call is harmless
    assert [json.loads(m)["text"] for m in [m async for m in sub.messages()]] == ["x"]
    assert hub.observer_count == 0


@pytest.mark.asyncio
async def test_close_ends_all_subscriptions():
    hub = BroadcastHub()
    subs = [hub.subscribe() for _ in range(3)]
    hub.close()
    assert hub.observer_count == 0
    for sub in subs:
        assert await asyncio.wait_for(sub.get(), 1) is None

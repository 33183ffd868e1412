"""Shared fixtures: a hub, a registry wired to the fake agent, event capture."""

import asyncio
import json
import sys
from pathlib import Path

import pytest

from monitor.hub import BroadcastHub
from monitor.sessions import SessionRegistry

FAKE_AGENT = [sys.executable, str(Path(__file__).parent / "fake_agent.py")]


class EventRecorder:
    """Collects wire events from a hub subscription."""

    def __init__(self, hub: BroadcastHub):
        self.sub = hub.subscribe()
        self.events: list[dict] = []

    async def until(self, predicate, timeout: float = 10.0) -> list[dict]:
        """Read events until ``predicate(event)`` is true for one of them."""
        async def _read():
            while True:
                message = await self.sub.get()
                if message is None:
                    raise AssertionError("subscription closed")
                event = json.loads(message)
                self.events.append(event)
                if predicate(event):
                    return
        await asyncio.wait_for(_read(), timeout)
        return self.events

    async def until_end(self, session_id: str, timeout: float = 10.0) -> list[dict]:
        await self.until(
            lambda e: e["type"] == "session_end" and e.get("sessionId") == session_id,
            timeout,
        )
        return [e for e in self.events if e.get("sessionId") == session_id]


@pytest.fixture
def fake_agent_command() -> list[str]:
    return list(FAKE_AGENT)


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub(queue_size=1000)


@pytest.fixture
def registry(hub, fake_agent_command, tmp_path) -> SessionRegistry:
    return SessionRegistry(hub, agent_command=fake_agent_command, default_cwd=str(tmp_path))


@pytest.fixture
def recorder(hub) -> EventRecorder:
    return EventRecorder(hub)

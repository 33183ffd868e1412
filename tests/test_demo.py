"""Tests for monitor.demo playback."""

import json

import pytest

from monitor.demo import DEMO_RECORDS, new_demo_id, play_demo
from monitor.hub import BroadcastHub


@pytest.mark.asyncio
async def test_demo_plays_full_translated_session():
    hub = BroadcastHub()
    sub = hub.subscribe()
    sid = new_demo_id()

    await play_demo(hub, sid, interval=0)
    hub.close()
    events = [json.loads(m) async for m in sub.messages()]

    assert sid.startswith("demo-")
    assert all(e["sessionId"] == sid for e in events)
    kinds = [e["type"] for e in events]
    assert kinds[0] == "session_start"
    assert kinds[-1] == "session_end"
    assert events[-1]["exitCode"] == 0
    assert kinds.count("agent_event") == len(DEMO_RECORDS)

    tools = [e["tool"] for e in events if e["type"] == "fe_tool_call"]
    assert tools == ["glob", "read", "edit", "bash", "task"]

    changed = [e for e in events if e["type"] == "fe_file_changed"]
    assert len(changed) == 1
    assert changed[0]["filePath"] == "src/index.ts"
    assert changed[0]["action"] == "edit"

    result = next(e for e in events if e["type"] == "fe_result")
    assert result["success"] is True
    assert result["numTurns"] == 6


@pytest.mark.asyncio
async def test_demo_ids_differ():
    assert new_demo_id() != new_demo_id()

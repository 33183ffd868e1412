"""Demo playback: a canned agent session for trying the UI without an agent binary.

The records are real stream-json shapes. They go through the same
translator as live output (with their own correlation tracker), so the
demo exercises every ``fe_*`` event type.
"""

import asyncio
import logging
from typing import Optional
from uuid import uuid4

from .correlation import CorrelationTracker
from .events import AGENT_EVENT, SESSION_END, SESSION_START, make_event
from .hub import BroadcastHub
from .logging import for_session
from .translator import translate_record

logger = logging.getLogger("agent_monitor")

DEMO_PROMPT = "Demo session"
DEMO_CWD = "/home/user/project"

DEMO_RECORDS: list[dict] = [
    {"type": "system", "subtype": "init",
     "tools": ["Read", "Write", "Edit", "Bash", "Glob", "Grep", "Task"],
     "model": "claude-sonnet-4-20250514", "cwd": DEMO_CWD},
    {"type": "assistant", "message": {"content": [
        {"type": "text", "text": "Let me explore the codebase first."}]}},
    {"type": "assistant", "message": {"content": [
        {"type": "tool_use", "id": "tu_1", "name": "Glob", "input": {"pattern": "src/**/*.ts"}}]}},
    {"type": "user", "message": {"content": [
        {"type": "tool_result", "tool_use_id": "tu_1",
         "content": "src/index.ts\nsrc/utils.ts\nsrc/config.ts"}]}},
    {"type": "assistant", "message": {"content": [
        {"type": "tool_use", "id": "tu_2", "name": "Read",
         "input": {"file_path": f"{DEMO_CWD}/src/index.ts"}}]}},
    {"type": "user", "message": {"content": [
        {"type": "tool_result", "tool_use_id": "tu_2",
         "content": "import { Config } from './config';\n\nexport function main() {\n  console.log('hello');\n}"}]}},
    {"type": "assistant", "message": {"content": [
        {"type": "text", "text": "Now I'll update the file."},
        {"type": "tool_use", "id": "tu_3", "name": "Edit",
         "input": {"file_path": f"{DEMO_CWD}/src/index.ts",
                   "old_string": "console.log('hello');",
                   "new_string": "console.log('hello world');"}}]}},
    {"type": "user", "message": {"content": [
        {"type": "tool_result", "tool_use_id": "tu_3", "content": "File edited successfully."}]}},
    {"type": "assistant", "message": {"content": [
        {"type": "tool_use", "id": "tu_4", "name": "Bash",
         "input": {"command": "npm test", "description": "Run tests"}}]}},
    {"type": "user", "message": {"content": [
        {"type": "tool_result", "tool_use_id": "tu_4",
         "content": "PASS src/index.test.ts\n  main\n    ✓ prints hello world (3ms)\n\nTests: 1 passed, 1 total"}]}},
    {"type": "assistant", "message": {"content": [
        {"type": "tool_use", "id": "tu_5", "name": "Task",
         "input": {"prompt": "Search for all error handling patterns",
                   "subagent_type": "Explore", "description": "Find error handlers"}}]}},
    {"type": "user", "message": {"content": [
        {"type": "tool_result", "tool_use_id": "tu_5",
         "content": "Found 3 try/catch blocks in src/utils.ts, 1 in src/config.ts"}]}},
    {"type": "assistant", "message": {"content": [
        {"type": "text", "text": "All done. I updated the greeting message and verified tests pass."}]}},
    {"type": "result", "subtype": "success", "is_error": False, "num_turns": 6,
     "total_cost_usd": 0.042, "result": "Updated greeting and verified tests."},
]


def new_demo_id() -> str:
    return f"demo-{uuid4().hex[:8]}"


async def play_demo(
    hub: BroadcastHub,
    session_id: str,
    interval: float = 0.8,
    records: Optional[list[dict]] = None,
) -> None:
    """Broadcast a scripted session, one record every ``interval`` seconds."""
    tracker = CorrelationTracker()
    hub.broadcast(make_event(SESSION_START, session_id, prompt=DEMO_PROMPT, workingDirectory=DEMO_CWD))
    try:
        for record in records if records is not None else DEMO_RECORDS:
            await asyncio.sleep(interval)
            hub.broadcast(make_event(AGENT_EVENT, session_id, event=record))
            for event in translate_record(session_id, record, DEMO_CWD, tracker):
                hub.broadcast(event)
    finally:
        hub.broadcast(make_event(SESSION_END, session_id, exitCode=0))
        logger.info("Demo playback finished", extra=for_session(session_id))

"""All REST, SSE and WebSocket endpoints for the FastAPI backend."""

import asyncio
import time

from fastapi import APIRouter, HTTPException, WebSocket
from sse_starlette.sse import EventSourceResponse

from monitor.demo import new_demo_id, play_demo
from monitor.errors import InvalidArgument, SessionNotFound, SpawnError
from monitor.hub import BroadcastHub
from monitor.sessions import SessionRegistry

from .models import (
    Acknowledgement,
    CreateSessionRequest,
    ServerStatus,
    SessionCreated,
    SessionInfo,
)
from .streaming import SSEObserver, serve_websocket

router = APIRouter(prefix="/api")
ws_router = APIRouter()

# These are injected by app.py lifespan
registry: SessionRegistry = None  # type: ignore[assignment]
hub: BroadcastHub = None  # type: ignore[assignment]
demo_interval: float = 0.8
_start_time: float = 0.0
_demo_tasks: set[asyncio.Task] = set()


def _session_info(session) -> dict:
    return SessionInfo(**session.snapshot()).model_dump(mode="json", by_alias=True)


# ---- Sessions ----


@router.post("/session")
async def create_session(req: CreateSessionRequest):
    """Spawn an agent for the prompt and start streaming its events."""
    try:
        session_id = await registry.create_session(req.prompt, req.cwd)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SpawnError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SessionCreated(session_id=session_id).model_dump(by_alias=True)


@router.get("/sessions")
async def list_sessions():
    """List all active sessions."""
    return [_session_info(s) for s in registry.list_sessions()]


@router.delete("/session/{session_id}")
async def terminate_session(session_id: str):
    """Ask a session's agent to stop. Its session_end follows on the event channel."""
    try:
        registry.terminate_session(session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Acknowledgement().model_dump()


# ---- Demo ----


@router.post("/demo")
async def start_demo():
    """Replay a canned session on the event channel."""
    session_id = new_demo_id()
    task = asyncio.create_task(play_demo(hub, session_id, interval=demo_interval))
    _demo_tasks.add(task)
    task.add_done_callback(_demo_tasks.discard)
    return SessionCreated(session_id=session_id).model_dump(by_alias=True)


# ---- Status ----


@router.get("/status")
async def get_status():
    return ServerStatus(
        active_sessions=len(registry),
        observers=hub.observer_count,
        uptime_seconds=round(time.time() - _start_time, 1),
        agent_command=registry.agent_command,
    ).model_dump(mode="json", by_alias=True)


# ---- Event channel ----


@router.get("/events")
async def events():
    """Server-sent event stream of every broadcast event."""
    return EventSourceResponse(SSEObserver(hub).events())


@ws_router.websocket("/ws")
async def websocket_events(websocket: WebSocket):
    """WebSocket stream of every broadcast event."""
    await serve_websocket(websocket, hub)

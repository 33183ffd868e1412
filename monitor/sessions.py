"""Agent session lifecycle: spawn, stream, terminate, reap."""

import asyncio
import codecs
import enum
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence
from uuid import uuid4

from .correlation import CorrelationTracker
from .errors import InvalidArgument, SessionNotFound, SpawnError
from .events import RAW_OUTPUT, SESSION_END, SESSION_START, STDERR, make_event, now_ms
from .framing import FrameDecoder
from .hub import BroadcastHub
from .logging import for_session
from .translator import translate_frame

logger = logging.getLogger("agent_monitor")

# Fixed flags: machine-readable streaming output, one JSON record per line
AGENT_ARGS = ("--output-format", "stream-json", "--verbose")

_READ_SIZE = 64 * 1024


def build_agent_argv(command: Sequence[str], prompt: str) -> list[str]:
    return [*command, *AGENT_ARGS, "-p", prompt]


def new_session_id() -> str:
    return f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"


# ---------------------------------------------------------------------------
# SessionState: explicit lifecycle
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """Lifecycle state of an agent session.

    RUNNING     ──(terminate requested)──► TERMINATING
    RUNNING     ──(process exits)────────► ENDED
    TERMINATING ──(process exits)────────► ENDED

    Only process exit leads to ENDED, and ENDED is when the session leaves
    the registry and ``session_end`` goes out.
    """
    RUNNING = "running"
    TERMINATING = "terminating"
    ENDED = "ended"


class Session:
    """One agent subprocess plus its decoding and correlation state.

    The session is the only owner of ``process``: nothing else signals or
    waits on it.
    """

    def __init__(
        self,
        session_id: str,
        prompt: str,
        working_directory: str,
        process: asyncio.subprocess.Process,
    ):
        self.id = session_id
        self.prompt = prompt
        self.working_directory = working_directory
        self.process = process
        self.started_at = now_ms()
        self.decoder = FrameDecoder()
        self.tracker = CorrelationTracker()
        self.state = SessionState.RUNNING
        self.exit_code: Optional[int] = None
        self._stderr_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._watcher: Optional[asyncio.Task] = None

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "startedAt": self.started_at,
            "workingDirectory": self.working_directory,
            "status": self.state.value,
        }

    def request_termination(self) -> bool:
        """Send SIGTERM once. Returns False if already terminating or ended."""
        if self.state is not SessionState.RUNNING:
            return False
        self.state = SessionState.TERMINATING
        try:
            self.process.terminate()
        except ProcessLookupError:
            pass
        return True

    def kill(self) -> None:
        try:
            self.process.kill()
        except ProcessLookupError:
            pass

    async def wait(self) -> Optional[int]:
        """Wait until the session has ended; return the exit code."""
        if self._watcher is not None:
            await asyncio.shield(self._watcher)
        return self.exit_code


class SessionRegistry:
    """Owns every running agent session.

    Each session gets its own subprocess, frame decoder and correlation
    tracker. Output is decoded, translated and broadcast on the hub as it
    arrives. A session leaves the registry only when its process exits.
    """

    def __init__(
        self,
        hub: BroadcastHub,
        agent_command: Sequence[str] = ("claude",),
        default_cwd: Optional[str] = None,
        env: Optional[dict] = None,
    ):
        if not agent_command:
            raise ValueError("agent_command must not be empty")
        self.hub = hub
        self.agent_command = list(agent_command)
        self.default_cwd = default_cwd
        self._env = env
        self._sessions: dict[str, Session] = {}
        self._issued_ids: set[str] = set()

    # ---- Control surface ----

    async def create_session(self, prompt: Optional[str], working_directory: Optional[str] = None) -> str:
        """Spawn an agent for ``prompt`` and return the new session id.

        Raises InvalidArgument for an empty prompt or a missing working
        directory, SpawnError if the process cannot be started.
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidArgument("prompt is required")
        cwd = self._resolve_cwd(working_directory)

        argv = build_agent_argv(self.agent_command, prompt)
        env = {**os.environ, "FORCE_COLOR": "0", **(self._env or {})}
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to start agent {argv[0]!r} in {cwd}: {e}")
            raise SpawnError(f"Could not start {argv[0]!r}: {e}") from e

        session_id = self._allocate_id()
        session = Session(session_id, prompt, cwd, process)
        self._sessions[session_id] = session
        # No await between here and the watcher start: session_start is
        # always broadcast before any output of this session.
        self.hub.broadcast(make_event(
            SESSION_START, session_id,
            prompt=prompt,
            workingDirectory=cwd,
        ))
        session._watcher = asyncio.create_task(
            self._watch(session), name=f"session-{session_id}",
        )
        logger.info(f"Session started (pid {process.pid}) in {cwd}", extra=for_session(session_id))
        return session_id

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def terminate_session(self, session_id: str) -> None:
        """Ask the session's process to stop. Does not wait for it.

        Raises SessionNotFound for an unknown id. Repeated calls on a known
        session are no-ops.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        if session.request_termination():
            logger.info("Termination requested", extra=for_session(session_id))

    def __len__(self) -> int:
        return len(self._sessions)

    async def shutdown(self, grace_seconds: float = 5.0) -> None:
        """Terminate every session and wait for them to end (server stop)."""
        sessions = list(self._sessions.values())
        for session in sessions:
            session.request_termination()
        watchers = {s._watcher: s for s in sessions if s._watcher is not None}
        if not watchers:
            return
        _, pending = await asyncio.wait(watchers.keys(), timeout=grace_seconds)
        for task in pending:
            logger.warning("Agent ignored SIGTERM, killing", extra=for_session(watchers[task].id))
            watchers[task].kill()
        if pending:
            await asyncio.wait(pending, timeout=grace_seconds)

    # ---- Internals ----

    def _resolve_cwd(self, working_directory: Optional[str]) -> str:
        raw = working_directory or self.default_cwd or os.getcwd()
        path = Path(raw).expanduser()
        if not path.is_dir():
            raise InvalidArgument(f"working directory does not exist: {raw}")
        return str(path.resolve())

    def _allocate_id(self) -> str:
        session_id = new_session_id()
        while session_id in self._issued_ids:
            session_id = new_session_id()
        self._issued_ids.add(session_id)
        return session_id

    def handle_stdout(self, session: Session, chunk: bytes) -> None:
        """Decode ``chunk`` and broadcast the events of every completed frame."""
        for frame in session.decoder.feed(chunk):
            self._emit_frame(session, frame)

    def _emit_frame(self, session: Session, frame: str) -> None:
        try:
            events = translate_frame(session.id, frame, session.working_directory, session.tracker)
        except Exception:
            logger.exception("Frame translation failed", extra=for_session(session.id))
            events = [make_event(RAW_OUTPUT, session.id, text=frame)]
        for event in events:
            self.hub.broadcast(event)

    def handle_stderr(self, session: Session, chunk: bytes) -> None:
        text = session._stderr_decoder.decode(chunk)
        if text:
            self.hub.broadcast(make_event(STDERR, session.id, text=text))

    async def _pump_stdout(self, session: Session) -> None:
        stream = session.process.stdout
        while True:
            chunk = await stream.read(_READ_SIZE)
            if not chunk:
                break
            self.handle_stdout(session, chunk)
        tail = session.decoder.flush()
        if tail is not None:
            self._emit_frame(session, tail)

    async def _pump_stderr(self, session: Session) -> None:
        stream = session.process.stderr
        while True:
            chunk = await stream.read(_READ_SIZE)
            if not chunk:
                break
            self.handle_stderr(session, chunk)
        tail = session._stderr_decoder.decode(b"", final=True)
        if tail:
            self.hub.broadcast(make_event(STDERR, session.id, text=tail))

    async def _watch(self, session: Session) -> None:
        """Drain both pipes, reap the process, then end the session."""
        exit_code: Optional[int] = None
        try:
            results = await asyncio.gather(
                self._pump_stdout(session),
                self._pump_stderr(session),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    logger.error(
                        f"Output reader failed: {result!r}",
                        exc_info=result,
                        extra=for_session(session.id),
                    )
                    # A dead reader can leave a pipe full; don't let the agent hang on it
                    session.request_termination()
            exit_code = await session.process.wait()
        finally:
            self._end(session, exit_code)

    def _end(self, session: Session, exit_code: Optional[int]) -> None:
        if session.state is SessionState.ENDED:
            return
        session.state = SessionState.ENDED
        session.exit_code = exit_code
        self._sessions.pop(session.id, None)
        self.hub.broadcast(make_event(SESSION_END, session.id, exitCode=exit_code))
        level = logging.INFO if exit_code == 0 else logging.WARNING
        logger.log(level, f"Session ended (exit code {exit_code})", extra=for_session(session.id))

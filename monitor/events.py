"""
Outbound event vocabulary: what observers receive on the event channel.

Every event is a ``MonitorEvent``: a type tag, the originating session id
(``None`` for process-wide notifications), a millisecond epoch timestamp and
a type-specific payload. ``to_wire()`` flattens it into the JSON object sent
to observers:

    {"type": "fe_tool_call", "sessionId": "...", "timestamp": 1712..., ...payload}

Payload keys are camelCase on the wire; the translator builds them that way.
"""

import json
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional


# ---- Event type constants ----

# Session lifecycle
SESSION_START = "session_start"      # {prompt, workingDirectory}
SESSION_END = "session_end"          # {exitCode}

# Raw subprocess output
AGENT_EVENT = "agent_event"          # {event}: parsed record, unmodified
RAW_OUTPUT = "raw_output"            # {text}: unparseable line, verbatim
STDERR = "stderr"                    # {text}

# Translated ("fe_" = frontend) events
FE_INIT = "fe_init"                  # {model, tools, cwd}
FE_RESULT = "fe_result"              # {success, result, numTurns, costUsd}
FE_ASSISTANT_TEXT = "fe_assistant_text"  # {text}
FE_TOOL_CALL = "fe_tool_call"        # {toolCallId, tool, ...tool fields, description}
FE_TOOL_RESULT = "fe_tool_result"    # {toolCallId, output, isError}
FE_FILE_CHANGED = "fe_file_changed"  # {filePath, action}

EVENT_TYPES = frozenset({
    SESSION_START, SESSION_END,
    AGENT_EVENT, RAW_OUTPUT, STDERR,
    FE_INIT, FE_RESULT, FE_ASSISTANT_TEXT,
    FE_TOOL_CALL, FE_TOOL_RESULT, FE_FILE_CHANGED,
})


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class MonitorEvent:
    """A single outbound event.

    Fields:
        type: Event type constant (e.g. "fe_tool_call").
        session_id: Originating session, or None for process-wide events.
        timestamp: Milliseconds since the epoch.
        data: Payload, read-only.
    """
    type: str
    session_id: Optional[str]
    timestamp: int
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {self.type!r}")
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def to_wire(self) -> dict:
        wire: dict[str, Any] = {"type": self.type}
        if self.session_id is not None:
            wire["sessionId"] = self.session_id
        wire["timestamp"] = self.timestamp
        wire.update(self.data)
        return wire

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False, default=str)


def make_event(type: str, session_id: Optional[str] = None, **data: Any) -> MonitorEvent:
    """Build an event stamped with the current time."""
    return MonitorEvent(type=type, session_id=session_id, timestamp=now_ms(), data=data)

"""monitor/translator.py: stream-json frame → outbound events.

``translate_frame()`` is the single entry point. It parses one frame,
always forwards the parsed record as ``agent_event``, then derives the
stable ``fe_*`` events from it. Unparseable frames are downgraded to a
single ``raw_output`` event, never dropped.

Tool calls go through a closed dispatch: every tool name maps to a
``ToolKind`` (unknown names to ``ToolKind.OTHER``) and every ``ToolKind``
has exactly one registered payload shaper. The module refuses to import if
a kind is left without a shaper.
"""

from __future__ import annotations

import enum
import json
import logging
import posixpath
from pathlib import PurePosixPath
from typing import Any, Callable, Optional

from .correlation import CorrelationTracker, PendingMutation
from .errors import CorrelationError
from .events import (
    AGENT_EVENT,
    FE_ASSISTANT_TEXT,
    FE_FILE_CHANGED,
    FE_INIT,
    FE_RESULT,
    FE_TOOL_CALL,
    FE_TOOL_RESULT,
    RAW_OUTPUT,
    MonitorEvent,
    make_event,
)
from .logging import for_session

logger = logging.getLogger("agent_monitor")


# ---- Paths ----

def relativize(path: str, working_directory: Optional[str]) -> str:
    """Express ``path`` relative to ``working_directory`` when it lies under it.

    Relative paths and absolute paths outside the directory come back
    unchanged. Purely lexical: the filesystem is never consulted.
    """
    if not path or not isinstance(path, str) or not working_directory:
        return path
    p = PurePosixPath(posixpath.normpath(path))
    root = PurePosixPath(posixpath.normpath(working_directory))
    if not p.is_absolute() or not root.is_absolute():
        return path
    if p == root:
        return "."
    if p.is_relative_to(root):
        return p.relative_to(root).as_posix()
    return path


# =====================================================================
# Tool dispatch
# =====================================================================

class ToolKind(enum.Enum):
    READ = "read"
    WRITE = "write"
    EDIT = "edit"
    BASH = "bash"
    GLOB = "glob"
    GREP = "grep"
    TASK = "task"
    OTHER = "other"


_TOOL_KINDS: dict[str, ToolKind] = {
    "Read": ToolKind.READ,
    "Write": ToolKind.WRITE,
    "Edit": ToolKind.EDIT,
    "MultiEdit": ToolKind.EDIT,
    "Bash": ToolKind.BASH,
    "Glob": ToolKind.GLOB,
    "Grep": ToolKind.GREP,
    "Task": ToolKind.TASK,
}

# Kinds whose invocation changes a file, and the action reported for them
MUTATING_KINDS: dict[ToolKind, str] = {
    ToolKind.WRITE: "write",
    ToolKind.EDIT: "edit",
}


def tool_kind(name: Any) -> ToolKind:
    if not isinstance(name, str):
        return ToolKind.OTHER
    return _TOOL_KINDS.get(name, ToolKind.OTHER)


Shaper = Callable[[str, dict, Optional[str]], dict]

_SHAPERS: dict[ToolKind, Shaper] = {}


def shaper(kind: ToolKind):
    """Decorator to register the payload shaper for a tool kind."""
    def decorator(fn: Shaper) -> Shaper:
        if kind in _SHAPERS:
            raise ValueError(f"Shaper for {kind} registered twice")
        _SHAPERS[kind] = fn
        return fn
    return decorator


def _text(value: Any) -> str:
    """Accept string fields only; anything else reads as empty."""
    return value if isinstance(value, str) else ""


def _file_fields(inp: dict, cwd: Optional[str]) -> dict:
    file_path = _text(inp.get("file_path"))
    return {"filePath": file_path, "relativePath": relativize(file_path, cwd)}


@shaper(ToolKind.READ)
def _shape_read(name: str, inp: dict, cwd: Optional[str]) -> dict:
    return {
        "tool": ToolKind.READ.value,
        **_file_fields(inp, cwd),
        "offset": inp.get("offset"),
        "limit": inp.get("limit"),
    }


@shaper(ToolKind.WRITE)
def _shape_write(name: str, inp: dict, cwd: Optional[str]) -> dict:
    return {
        "tool": ToolKind.WRITE.value,
        **_file_fields(inp, cwd),
        "content": inp.get("content", ""),
    }


@shaper(ToolKind.EDIT)
def _shape_edit(name: str, inp: dict, cwd: Optional[str]) -> dict:
    fields = {"tool": ToolKind.EDIT.value, **_file_fields(inp, cwd)}
    if "edits" in inp:
        edits = inp.get("edits")
        # MultiEdit: a list of {old_string, new_string, replace_all}
        fields["edits"] = [
            {
                "oldString": e.get("old_string", ""),
                "newString": e.get("new_string", ""),
                "replaceAll": bool(e.get("replace_all", False)),
            }
            for e in (edits if isinstance(edits, list) else [])
            if isinstance(e, dict)
        ]
    else:
        fields["oldString"] = inp.get("old_string", "")
        fields["newString"] = inp.get("new_string", "")
        fields["replaceAll"] = bool(inp.get("replace_all", False))
    return fields


@shaper(ToolKind.BASH)
def _shape_bash(name: str, inp: dict, cwd: Optional[str]) -> dict:
    return {
        "tool": ToolKind.BASH.value,
        "command": inp.get("command", ""),
        "timeout": inp.get("timeout"),
        "runInBackground": bool(inp.get("run_in_background", False)),
    }


@shaper(ToolKind.GLOB)
def _shape_glob(name: str, inp: dict, cwd: Optional[str]) -> dict:
    return {
        "tool": ToolKind.GLOB.value,
        "pattern": inp.get("pattern", ""),
        "path": relativize(_text(inp.get("path")), cwd),
    }


@shaper(ToolKind.GREP)
def _shape_grep(name: str, inp: dict, cwd: Optional[str]) -> dict:
    return {
        "tool": ToolKind.GREP.value,
        "pattern": inp.get("pattern", ""),
        "path": relativize(_text(inp.get("path")), cwd),
        "glob": inp.get("glob"),
        "outputMode": inp.get("output_mode"),
    }


@shaper(ToolKind.TASK)
def _shape_task(name: str, inp: dict, cwd: Optional[str]) -> dict:
    return {
        "tool": ToolKind.TASK.value,
        "prompt": inp.get("prompt", ""),
        "subagentType": inp.get("subagent_type", ""),
    }


@shaper(ToolKind.OTHER)
def _shape_other(name: str, inp: dict, cwd: Optional[str]) -> dict:
    return {"tool": name, "input": inp}


_unshaped = [k for k in ToolKind if k not in _SHAPERS]
if _unshaped:
    raise RuntimeError(f"ToolKind members without a shaper: {_unshaped}")
del _unshaped


# =====================================================================
# Frame translation
# =====================================================================

def _content_blocks(message: Any) -> list:
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    if isinstance(content, list):
        return [b for b in content if isinstance(b, dict)]
    return []


def _result_text(content: Any) -> str:
    """Flatten tool_result content (a string or a list of text parts)."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
            elif isinstance(part, str):
                parts.append(part)
        return "\n".join(parts)
    return json.dumps(content, ensure_ascii=False)


def _translate_init(sid: str, record: dict, cwd: Optional[str]) -> list[MonitorEvent]:
    return [make_event(
        FE_INIT, sid,
        model=record.get("model"),
        tools=record.get("tools") or [],
        cwd=record.get("cwd") or cwd,
    )]


def _translate_result(sid: str, record: dict) -> list[MonitorEvent]:
    if "is_error" in record:
        success = not record.get("is_error")
    else:
        success = record.get("subtype") == "success"
    cost = record.get("total_cost_usd")
    if cost is None:
        cost = record.get("cost_usd")
    return [make_event(
        FE_RESULT, sid,
        success=success,
        result=record.get("result"),
        numTurns=record.get("num_turns"),
        costUsd=cost,
    )]


def translate_tool_call(
    sid: str,
    block: dict,
    cwd: Optional[str],
    tracker: CorrelationTracker,
) -> MonitorEvent:
    """Shape one ``tool_use`` block and register it if it mutates a file."""
    name = block.get("name") or ""
    tool_call_id = _text(block.get("id"))
    inp = block.get("input")
    if not isinstance(inp, dict):
        inp = {}
    kind = tool_kind(name)
    fields = _SHAPERS[kind](name, inp, cwd)

    action = MUTATING_KINDS.get(kind)
    target = _text(inp.get("file_path"))
    if action and tool_call_id and target:
        try:
            tracker.register(tool_call_id, PendingMutation(target_path=target, action=action))
        except CorrelationError as e:
            logger.warning(f"Ignoring repeated tool call: {e}", extra=for_session(sid))

    return make_event(
        FE_TOOL_CALL, sid,
        toolCallId=tool_call_id,
        **fields,
        description=inp.get("description", ""),
    )


def _translate_assistant(
    sid: str, record: dict, cwd: Optional[str], tracker: CorrelationTracker,
) -> list[MonitorEvent]:
    events = []
    for block in _content_blocks(record.get("message")):
        btype = block.get("type")
        if btype == "text":
            events.append(make_event(FE_ASSISTANT_TEXT, sid, text=block.get("text", "")))
        elif btype == "tool_use":
            events.append(translate_tool_call(sid, block, cwd, tracker))
    return events


def _translate_user(
    sid: str, record: dict, cwd: Optional[str], tracker: CorrelationTracker,
) -> list[MonitorEvent]:
    events = []
    for block in _content_blocks(record.get("message")):
        if block.get("type") != "tool_result":
            continue
        tool_call_id = _text(block.get("tool_use_id"))
        events.append(make_event(
            FE_TOOL_RESULT, sid,
            toolCallId=tool_call_id,
            output=_result_text(block.get("content")),
            isError=bool(block.get("is_error", False)),
        ))
        mutation = tracker.consume(tool_call_id)
        if mutation is not None:
            events.append(make_event(
                FE_FILE_CHANGED, sid,
                filePath=relativize(mutation.target_path, cwd),
                action=mutation.action,
            ))
    return events


def translate_record(
    sid: str,
    record: dict,
    cwd: Optional[str],
    tracker: CorrelationTracker,
) -> list[MonitorEvent]:
    """Derive the ``fe_*`` events for one parsed record (no passthrough)."""
    kind = record.get("type")
    if kind == "system" and record.get("subtype") == "init":
        return _translate_init(sid, record, cwd)
    if kind == "result":
        return _translate_result(sid, record)
    if kind == "assistant":
        return _translate_assistant(sid, record, cwd, tracker)
    if kind == "user":
        return _translate_user(sid, record, cwd, tracker)
    return []


def translate_frame(
    sid: str,
    frame: str,
    working_directory: Optional[str],
    tracker: CorrelationTracker,
) -> list[MonitorEvent]:
    """Translate one decoded frame into outbound events.

    Returns ``[]`` for blank frames, ``[raw_output]`` for anything that is
    not a JSON object, and otherwise ``[agent_event, *fe_events]``.
    """
    if not frame.strip():
        return []
    try:
        record = json.loads(frame)
    except ValueError:
        record = None
    if not isinstance(record, dict):
        logger.debug(f"Non-JSON frame ({len(frame)} chars)", extra=for_session(sid))
        return [make_event(RAW_OUTPUT, sid, text=frame)]

    events = [make_event(AGENT_EVENT, sid, event=record)]
    events.extend(translate_record(sid, record, working_directory, tracker))
    return events

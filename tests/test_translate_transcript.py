"""Tests for scripts/translate_transcript.py."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "scripts"))

from translate_transcript import main, translate_stream  # noqa: E402

TRANSCRIPT = (
    b'{"type":"system","subtype":"init","model":"m","tools":[],"cwd":"/repo"}\n'
    b'{"type":"assistant","message":{"content":[{"type":"tool_use","id":"e1","name":"Edit",'
    b'"input":{"file_path":"/repo/x.py","old_string":"a","new_string":"b"}}]}}\n'
    b'progress 50%\n'
    b'{"type":"user","message":{"content":[{"type":"tool_result","tool_use_id":"e1","content":"ok"}]}}\n'
)


def test_translate_stream_chunked():
    chunks = [TRANSCRIPT[i:i + 7] for i in range(0, len(TRANSCRIPT), 7)]
    events = translate_stream(chunks, working_directory="/repo")
    kinds = [e.type for e in events]
    assert kinds == [
        "agent_event", "fe_init",
        "agent_event", "fe_tool_call",
        "raw_output",
        "agent_event", "fe_tool_result", "fe_file_changed",
    ]
    assert events[-1].data["filePath"] == "x.py"


def test_cli_translated_only(tmp_path, capsys):
    path = tmp_path / "run.jsonl"
    path.write_bytes(TRANSCRIPT)
    assert main([str(path), "--cwd", "/repo", "--translated"]) == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [e["type"] for e in lines] == ["fe_init", "fe_tool_call", "fe_tool_result", "fe_file_changed"]
    assert lines[1]["relativePath"] == "x.py"


def test_cli_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.jsonl")]) == 1

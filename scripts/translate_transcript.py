"""
Offline translation of a recorded stream-json transcript.

Runs a captured agent output file through the same decoder and translator
the server uses and prints the resulting events, one JSON object per line.
Handy for checking how a new record shape will look on the event channel.

Usage (CLI):
    python scripts/translate_transcript.py run.jsonl                 # all events
    python scripts/translate_transcript.py run.jsonl --cwd /repo     # relativize paths
    python scripts/translate_transcript.py run.jsonl --translated    # fe_* only
    claude -p "..." --output-format stream-json --verbose | python scripts/translate_transcript.py -

Public API:
    translate_stream(chunks, ...) -> list[MonitorEvent]
"""

import argparse
import sys
from pathlib import Path
from typing import Iterable, Optional

# Add project root to path so this works as both a script and a module
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from monitor.correlation import CorrelationTracker
from monitor.events import MonitorEvent
from monitor.framing import FrameDecoder
from monitor.translator import translate_frame


def translate_stream(
    chunks: Iterable[bytes],
    *,
    session_id: str = "transcript",
    working_directory: Optional[str] = None,
) -> list[MonitorEvent]:
    """Decode and translate a byte stream as if it came from a live session."""
    decoder = FrameDecoder()
    tracker = CorrelationTracker()
    events: list[MonitorEvent] = []
    for chunk in chunks:
        for frame in decoder.feed(chunk):
            events.extend(translate_frame(session_id, frame, working_directory, tracker))
    tail = decoder.flush()
    if tail is not None:
        events.extend(translate_frame(session_id, tail, working_directory, tracker))
    return events


def _read_chunks(source: str, size: int = 64 * 1024) -> Iterable[bytes]:
    stream = sys.stdin.buffer if source == "-" else open(source, "rb")
    try:
        while True:
            chunk = stream.read(size)
            if not chunk:
                return
            yield chunk
    finally:
        if stream is not sys.stdin.buffer:
            stream.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Translate a stream-json transcript into monitor events")
    parser.add_argument("source", help="Transcript file, or '-' for stdin")
    parser.add_argument("--cwd", default=None, help="Working directory the transcript was recorded in")
    parser.add_argument("--translated", action="store_true", help="Only print fe_* events")
    args = parser.parse_args(argv)

    try:
        events = translate_stream(_read_chunks(args.source), working_directory=args.cwd)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for event in events:
        if args.translated and not event.type.startswith("fe_"):
            continue
        print(event.to_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Newline-delimited frame decoding for subprocess output."""

import codecs
from typing import Optional, Union


class FrameDecoder:
    """Turns a chunked byte (or text) stream into complete lines.

    Each ``feed()`` appends to the carried-over remainder, returns every line
    whose ``\\n`` has arrived, and keeps the trailing partial segment. Frames
    come back in arrival order with the ``\\n`` removed and nothing else
    touched (a ``\\r`` before it stays). There is no size cap: a single huge
    line is held in full until its newline shows up.

    Bytes go through an incremental UTF-8 decoder, so a multi-byte character
    split across two chunks is reassembled rather than mangled.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._remainder = ""

    @property
    def remainder(self) -> str:
        """The buffered partial line (empty right after a newline)."""
        return self._remainder

    def feed(self, chunk: Union[bytes, str]) -> list[str]:
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        if not chunk:
            return []
        parts = (self._remainder + chunk).split("\n")
        self._remainder = parts.pop()
        return parts

    def flush(self) -> Optional[str]:
        """End of stream: return the unterminated last line, if any."""
        tail = self._remainder + self._decoder.decode(b"", final=True)
        self._remainder = ""
        return tail or None

"""Chunk-level text handling for subprocess output.

LineReassembler turns arbitrarily split chunks into complete lines
for structured-event tools. ThinkingFilter removes ``<thinking>``
spans from plain-text tool output, tolerating markers split across
chunk boundaries.
"""
from __future__ import annotations

OPEN_MARKER = "<thinking>"
CLOSE_MARKER = "</thinking>"


class LineReassembler:
    """Buffer partial text and emit complete, non-blank, trimmed lines.

    The unterminated remainder stays buffered until its newline
    arrives. It is discarded (never emitted) when the turn ends.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> list[str]:
        if not chunk:
            return []
        self._buffer += chunk
        if "\n" not in chunk:
            return []
        *complete, self._buffer = self._buffer.split("\n")
        return [line.strip() for line in complete if line.strip()]

    @property
    def pending(self) -> str:
        return self._buffer

    def reset(self) -> str:
        """Discard and return the buffered partial line."""
        remainder, self._buffer = self._buffer, ""
        return remainder


def _partial_marker_len(text: str, marker: str) -> int:
    """Length of the longest proper prefix of *marker* that ends *text*."""
    for size in range(min(len(marker) - 1, len(text)), 0, -1):
        if text.endswith(marker[:size]):
            return size
    return 0


class ThinkingFilter:
    """Strip ``<thinking>...</thinking>`` spans from a text stream.

    One newline (``\\n`` or ``\\r\\n``) directly after the closing
    marker is dropped as well.
    """

    def __init__(self) -> None:
        self._tail = ""
        self._in_thinking = False
        self._strip_newline = False

    @property
    def in_thinking(self) -> bool:
        return self._in_thinking

    def feed(self, chunk: str) -> str:
        """Consume *chunk* and return the text that is safe to show."""
        buf = self._tail + chunk
        self._tail = ""
        visible: list[str] = []

        while buf:
            if self._strip_newline:
                if buf == "\r":
                    self._tail = buf
                    break
                if buf.startswith("\r\n"):
                    buf = buf[2:]
                elif buf.startswith("\n"):
                    buf = buf[1:]
                self._strip_newline = False
                continue

            if self._in_thinking:
                end = buf.find(CLOSE_MARKER)
                if end < 0:
                    keep = _partial_marker_len(buf, CLOSE_MARKER)
                    self._tail = buf[len(buf) - keep:] if keep else ""
                    break
                buf = buf[end + len(CLOSE_MARKER):]
                self._in_thinking = False
                self._strip_newline = True
                continue

            start = buf.find(OPEN_MARKER)
            if start < 0:
                keep = _partial_marker_len(buf, OPEN_MARKER)
                visible.append(buf[:len(buf) - keep])
                self._tail = buf[len(buf) - keep:] if keep else ""
                break
            visible.append(buf[:start])
            buf = buf[start + len(OPEN_MARKER):]
            self._in_thinking = True

        return "".join(visible)

    def flush(self) -> str:
        """End of stream: release a held partial marker outside thinking."""
        tail = "" if self._in_thinking else self._tail
        self.reset()
        return tail

    def reset(self) -> None:
        self._tail = ""
        self._in_thinking = False
        self._strip_newline = False

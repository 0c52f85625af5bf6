"""
Recovery of top-level JSON objects from a streamed byte body.

Proxies in front of the server may coalesce several newline-delimited objects
into one delivered chunk, or split one object over several chunks. Frames are
therefore found by delimiter matching rather than by line or chunk boundaries.
Only braces, quotes and backslash escapes are interpreted; anything else about
the JSON is left to the decoder.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

_OPEN_BRACE = ord("{")
_CLOSE_BRACE = ord("}")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")


@dataclass
class _ScanState:
    """Scanner position and delimiter state for an unconsumed buffer prefix."""

    position: int = 0
    depth: int = 0
    in_string: bool = False
    escaped: bool = False
    start: int = 0


def _scan(buffer: bytearray, state: _ScanState) -> Optional[tuple[int, int]]:
    """
    Advance the scan over ``buffer`` from ``state.position``.

    Returns:
        ``(start, end)`` of the first complete top-level object (``end`` is
        exclusive), or None when the end of the buffer is reached first. In
        the latter case ``state`` records where scanning stopped.
    """
    index = state.position
    length = len(buffer)
    while index < length:
        byte = buffer[index]
        if state.escaped:
            state.escaped = False
        elif byte == _BACKSLASH:
            state.escaped = True
        elif byte == _QUOTE:
            state.in_string = not state.in_string
        elif not state.in_string:
            if byte == _OPEN_BRACE:
                state.depth += 1
                if state.depth == 1:
                    state.start = index
            elif byte == _CLOSE_BRACE and state.depth > 0:
                # A closing brace at depth zero is inter-frame noise.
                state.depth -= 1
                if state.depth == 0:
                    return state.start, index + 1
        index += 1
    state.position = length
    return None


def extract_next_frame(buffer: bytearray) -> Optional[bytes]:
    """
    Remove and return the first complete top-level JSON object in ``buffer``.

    Bytes in front of the object (whitespace, separators) are discarded along
    with it. When no complete object is available the buffer is left
    untouched and None is returned; the caller appends more bytes and retries.
    """
    found = _scan(buffer, _ScanState())
    if found is None:
        return None
    start, end = found
    frame = bytes(buffer[start:end])
    del buffer[:end]
    return frame


class FrameBuffer:
    """
    Append-only accumulator for one streaming call.

    Scanning resumes where the previous extraction attempt stopped, so a large
    object arriving in many small chunks is scanned once. The frames produced
    are identical to calling :func:`extract_next_frame` on the whole buffer.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._state = _ScanState()

    def __len__(self) -> int:
        return len(self._buffer)

    def append(self, chunk: bytes) -> None:
        self._buffer.extend(chunk)

    def extract_next(self) -> Optional[bytes]:
        found = _scan(self._buffer, self._state)
        if found is None:
            return None
        start, end = found
        frame = bytes(self._buffer[start:end])
        del self._buffer[:end]
        self._state = _ScanState()
        return frame

    def drain(self) -> Iterator[bytes]:
        """Yield every frame that is currently complete, in order."""
        while True:
            frame = self.extract_next()
            if frame is None:
                return
            yield frame

    def pending(self) -> bytes:
        """Bytes appended but not yet consumed by an extracted frame."""
        return bytes(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()
        self._state = _ScanState()

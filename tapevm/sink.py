"""
Output sink — takes the finished output bytes off the machine.

Bytes are copied unchanged. Text rendering is a presentation step only:
invalid UTF-8 falls back to a lossy decode and never alters the bytes.
"""

from __future__ import annotations

import sys

DEFAULT_CAPACITY = 1 << 18

INVALID_UTF8_BANNER = "(Invalid Utf-8):\n"


class BufferTooSmall(ValueError):
    """The output does not fit the target buffer."""

    def __init__(self, needed: int, capacity: int):
        super().__init__(f"Buffer not large enough: need {needed} bytes, capacity {capacity}")
        self.needed = needed
        self.capacity = capacity


def write_output(output: bytes, buffer: bytearray) -> int:
    """Copy output into the front of buffer. Returns the number of bytes written."""
    n = len(output)
    if n > len(buffer):
        raise BufferTooSmall(n, len(buffer))
    buffer[:n] = output
    return n


def render_output(output: bytes) -> str:
    try:
        return output.decode("utf-8")
    except UnicodeDecodeError:
        return INVALID_UTF8_BANNER + output.decode("utf-8", errors="replace")


class OutputSink:
    """Fixed-capacity byte sink, the consumer end of a run."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self.buffer = bytearray(capacity)
        self.length = 0

    def write(self, output: bytes) -> int:
        self.length = write_output(output, self.buffer)
        return self.length

    def getvalue(self) -> bytes:
        return bytes(self.buffer[:self.length])

    def render(self) -> str:
        return render_output(self.getvalue())

    def emit(self, file=None):
        file = file if file is not None else sys.stdout
        print(self.render(), end="", file=file, flush=True)

    def __len__(self) -> int:
        return self.length

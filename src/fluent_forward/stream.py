"""Line-oriented adapter: turns a byte/text stream into one event per line."""

from __future__ import annotations

import codecs
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fluent_forward.sender import FluentSender


class EventStream:
    """Buffers written data and emits ``{"message": line}`` per complete line.

    Lines are emitted in order; each write waits until every complete line
    it produced has been delivered. A trailing partial line stays buffered
    until a later write completes it or ``flush()`` is called.
    """

    def __init__(self, sender: FluentSender, label: str, encoding: str = "utf-8"):
        if not label:
            msg = "label is needed"
            raise ValueError(msg)
        self.sender = sender
        self.label = label
        self.encoding = encoding
        # Multi-byte characters may be split across writes
        self._decoder = codecs.getincrementaldecoder(encoding)()
        self._buffer = ""

    async def write(self, chunk: bytes | str) -> None:
        """Buffer ``chunk`` and emit every completed line.

        Raises:
            Exception: The delivery error of the first line that failed; it
                was already published on the sender's ``error`` event; the
                remaining lines of this write are dropped
        """
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        *lines, self._buffer = (self._buffer + text).split("\n")
        for line in lines:
            await self._emit_line(line)

    async def flush(self) -> None:
        """Emit a buffered partial line, if any."""
        if self._buffer:
            line, self._buffer = self._buffer, ""
            await self._emit_line(line)

    async def _emit_line(self, line: str) -> None:
        result = await self.sender.emit(self.label, {"message": line})
        if result.error is not None:
            raise result.error

    @property
    def pending(self) -> str:
        """Buffered text not yet terminated by a newline."""
        return self._buffer

"""Incremental decoder for the completion event stream.

Network chunks are not aligned with SSE lines: a chunk may end mid-line,
mid-payload or even mid-character. Bytes go through an incremental UTF-8
decoder and a line buffer that holds back the trailing partial line, so the
events produced never depend on where the chunk boundaries fell.

Two payload shapes carry text:

- ``{"type": "content_block_delta", "delta": {"type": "text_delta", "text": ...}}``
- ``{"completion": ...}`` (older responses)

Anything else, including payloads that are not JSON, is ignored.
"""

import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator, Optional

from .config import DATA_PREFIX, DONE_SENTINEL, LINE_TERMINATOR
from .core import StreamEvent

logger = logging.getLogger(__name__)


class LineBuffer:
    """Splits a text stream into complete lines on a fixed terminator."""

    def __init__(self, terminator: str = LINE_TERMINATOR):
        if not terminator:
            raise ValueError("Line terminator must not be empty")
        self.terminator = terminator
        self._pending = ""

    def feed(self, text: str) -> list[str]:
        """Add text and return every line it completed, in order."""
        if not text:
            return []
        self._pending += text
        lines = self._pending.split(self.terminator)
        self._pending = lines.pop()
        return lines

    def flush(self) -> str:
        """Return and clear the unterminated remainder."""
        rest, self._pending = self._pending, ""
        return rest

    @property
    def pending(self) -> str:
        return self._pending


def parse_payload(payload: str) -> Optional[StreamEvent]:
    """Map one ``data:`` payload to a delta event, or None to skip it."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    delta = data.get("delta")
    if data.get("type") == "content_block_delta" and isinstance(delta, dict):
        text = delta.get("text")
        if delta.get("type") == "text_delta" and isinstance(text, str):
            return StreamEvent.delta(text)
        return None

    completion = data.get("completion")
    if completion and isinstance(completion, str):
        return StreamEvent.delta(completion)

    return None


class SSEDecoder:
    """Turns raw byte chunks of one response into StreamEvents.

    One decoder per stream: the buffers are mutated in place, and once a
    ``done`` event has been produced all further input is ignored.
    """

    def __init__(
        self,
        terminator: str = DONE_SENTINEL,
        line_terminator: str = LINE_TERMINATOR,
        prefix: str = DATA_PREFIX,
    ):
        self.terminator = terminator
        self.prefix = prefix
        self._lines = LineBuffer(line_terminator)
        self._text = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.finished = False

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Consume one chunk and return the events it completed."""
        if self.finished or not chunk:
            return []
        return self._consume(self._lines.feed(self._text.decode(chunk)))

    def finish(self) -> list[StreamEvent]:
        """Signal end of input; always ends with a ``done`` event."""
        if self.finished:
            return []
        lines = self._lines.feed(self._text.decode(b"", final=True))
        lines.append(self._lines.flush())
        events = self._consume(lines)
        if not self.finished:
            self.finished = True
            events.append(StreamEvent.done())
        return events

    async def decode(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
        """Lazily decode a whole stream of chunks, in arrival order."""
        async for chunk in chunks:
            for event in self.feed(chunk):
                yield event
            if self.finished:
                return
        for event in self.finish():
            yield event

    # ── Private helpers ──────────────────────────────────────────────

    def _consume(self, lines: list[str]) -> list[StreamEvent]:
        events = []
        for line in lines:
            event = self._parse_line(line)
            if event is None:
                continue
            events.append(event)
            if event.kind == "done":
                self.finished = True
                break
        return events

    def _parse_line(self, line: str) -> Optional[StreamEvent]:
        line = line.rstrip("\r")
        if not line.startswith(self.prefix):
            return None
        payload = line[len(self.prefix):].strip()
        if payload == self.terminator:
            return StreamEvent.done()
        event = parse_payload(payload)
        if event is None and payload:
            logger.debug("Ignoring unrecognized event payload: %.200s", payload)
        return event

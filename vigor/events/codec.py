"""SSE wire format.

One frame per event::

    id: <opaque-monotonic-id>
    event: <event-type | heartbeat | connection.established>
    data: <JSON>
    <blank line>
"""

from __future__ import annotations

import itertools
import json
import re
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

HEARTBEAT = "heartbeat"
CONNECTION_ESTABLISHED = "connection.established"

#: Frame types that carry no domain event.
CONTROL_EVENTS: frozenset[str] = frozenset({HEARTBEAT, CONNECTION_ESTABLISHED})

_LINE_END = re.compile(r"\r\n|\r|\n")


class EventIdGenerator:
    """Monotonic ``<epoch-ms>-<counter>`` ids, unique within a process."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{int(time.time() * 1000)}-{next(self._counter)}"


def event_id_sequence(event_id: str) -> int:
    """Counter part of an id produced by :class:`EventIdGenerator`."""
    return int(event_id.rsplit("-", 1)[1])


def format_frame(event_id: str | None, event: str | None, data: Any) -> str:
    """Serialize one SSE frame. Non-string *data* is JSON-encoded."""
    lines: list[str] = []
    if event_id:
        lines.append(f"id: {event_id}")
    if event:
        lines.append(f"event: {event}")
    text = data if isinstance(data, str) else json.dumps(data, separators=(",", ":"))
    for line in text.split("\n"):
        lines.append(f"data: {line}")
    return "\n".join(lines) + "\n\n"


@dataclass(frozen=True)
class Frame:
    event: str
    data: str
    id: str | None = None

    def json(self) -> Any:
        return json.loads(self.data)


class FrameDecoder:
    """Incremental SSE parser.

    Feed arbitrary text chunks; complete frames are returned as soon as their
    terminating blank line arrives. Comment lines (``:``) and ``retry`` fields
    are ignored. Frames without data are dropped, matching EventSource.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._reset()

    def _reset(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._id: str | None = None

    def feed(self, chunk: str) -> list[Frame]:
        self._buffer += chunk
        frames: list[Frame] = []
        while True:
            match = _LINE_END.search(self._buffer)
            if match is None:
                break
            # A trailing CR may be the first half of a CRLF split across chunks.
            if match.group() == "\r" and match.end() == len(self._buffer):
                break
            line = self._buffer[: match.start()]
            self._buffer = self._buffer[match.end() :]
            frame = self._line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def _line(self, line: str) -> Frame | None:
        if line == "":
            if not self._data:
                self._reset()
                return None
            frame = Frame(event=self._event or "message", data="\n".join(self._data), id=self._id)
            self._reset()
            return frame
        if line.startswith(":"):
            return None
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            self._id = value
        return None


def iter_frames(text: str) -> Iterator[Frame]:
    """Parse a complete SSE body."""
    yield from FrameDecoder().feed(text)

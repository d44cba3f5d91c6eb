"""Writable transports behind live connections.

A transport is owned by exactly one connection. ``write`` is synchronous and
non-blocking; it raises :class:`TransportClosedError` when the frame cannot
be delivered. ``close`` is idempotent.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from vigor.exceptions import TransportClosedError

_CLOSE = object()


@runtime_checkable
class Transport(Protocol):
    """What the registry and broadcaster need from a connection's stream."""

    @property
    def closed(self) -> bool: ...

    def write(self, frame: str) -> None: ...

    def close(self) -> None: ...


class QueueTransport:
    """Transport backed by a bounded :class:`asyncio.Queue`.

    The HTTP response drains the queue through :meth:`frames`. A full queue
    means the client stopped reading (slow or half-open socket) and counts
    as a failed write, so the broadcaster prunes it.
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, frame: str) -> None:
        if self._closed:
            raise TransportClosedError("Connection is closed")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self._closed = True
            raise TransportClosedError("Subscriber queue full") from None

    def close(self) -> None:
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            # Reader still has a backlog; it stops once it sees ``closed``.
            pass

    def pending(self) -> int:
        return self._queue.qsize()

    async def frames(self) -> AsyncIterator[str]:
        """Yield queued frames until the transport is closed."""
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            yield item  # type: ignore[misc]
            if self._closed and self._queue.empty():
                return

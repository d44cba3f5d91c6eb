"""In-memory table of live subscriber connections.

Pure bookkeeping: no awaits and no I/O beyond closing a transport on
removal. All mutations happen on the event loop thread, so no locking.
"""

from __future__ import annotations

import logging

from vigor.events.types import Connection, EventFilter

logger = logging.getLogger("vigor.events.registry")


class ConnectionRegistry:
    """Connections keyed by connection id."""

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def add(self, connection: Connection) -> None:
        """Insert *connection*; a reused id replaces the previous entry."""
        self._connections[connection.id] = connection

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def remove(self, connection_id: str) -> bool:
        """Close and forget *connection_id*.

        Idempotent: unknown ids are a no-op. Returns whether an entry
        was removed.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return False
        if not connection.transport.closed:
            try:
                connection.transport.close()
            except Exception:  # noqa: BLE001
                logger.debug("Transport close failed for %s", connection_id, exc_info=True)
        return True

    def all(self) -> list[Connection]:
        """Snapshot of every live connection."""
        return list(self._connections.values())

    def filter(self, event_filter: EventFilter) -> list[Connection]:
        """Connections of ``event_filter.org_id`` whose location scope admits the event.

        A connection with no location receives every event of its tenant; a
        location-scoped connection receives events for that location and
        tenant-wide events (``event_filter.location_id is None``).
        """
        return [c for c in self._connections.values() if c.matches(event_filter)]

    def count(self, org_id: str | None = None) -> int:
        if org_id is None:
            return len(self._connections)
        return sum(1 for c in self._connections.values() if c.org_id == org_id)

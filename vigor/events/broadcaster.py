"""Server-Sent Events broadcaster for the live dashboard.

Turns one domain event into zero or more frame writes. A failed write is
the normal signal that a client went away: the connection is pruned from
the registry and the broadcast continues with the rest. Nothing here ever
raises into the code that produced the event.

One broadcaster is constructed per application and owned by its lifespan:
:meth:`start` launches the heartbeat task, :meth:`shutdown` stops it and
closes every connection.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, NamedTuple

from vigor.events.codec import CONNECTION_ESTABLISHED, HEARTBEAT, EventIdGenerator, format_frame
from vigor.events.registry import ConnectionRegistry
from vigor.events.types import Connection, DomainEvent, EventFilter

logger = logging.getLogger("vigor.events.broadcaster")

DEFAULT_HEARTBEAT_INTERVAL: float = 15.0  # seconds


class BroadcastResult(NamedTuple):
    sent: int
    failed: int


class EventBroadcaster:
    """Fan-out of typed events to registered SSE connections."""

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        *,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        id_generator: EventIdGenerator | None = None,
    ) -> None:
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.heartbeat_interval = heartbeat_interval
        self._next_id = id_generator or EventIdGenerator()
        self._heartbeat_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def next_event_id(self) -> str:
        return self._next_id()

    def add_connection(self, connection: Connection) -> bool:
        """Register *connection* and confirm it with a ``connection.established`` frame.

        Returns False when the confirmation could not be written, in which
        case the connection has already been removed again.
        """
        self.registry.add(connection)
        frame = format_frame(
            self._next_id(),
            CONNECTION_ESTABLISHED,
            {
                "status": "connected",
                "connectionId": connection.id,
                "connectedAt": connection.connected_at.isoformat(),
                "orgId": connection.org_id,
                "locationId": connection.location_id,
            },
        )
        if not self._write(connection, frame):
            return False
        logger.info(
            "Connection added: %s (org: %s, location: %s), total %d",
            connection.id,
            connection.org_id,
            connection.location_id,
            len(self.registry),
            extra={
                "connection_id": connection.id,
                "org_id": connection.org_id,
                "location_id": connection.location_id,
            },
        )
        return True

    def remove_connection(self, connection_id: str) -> None:
        if self.registry.remove(connection_id):
            logger.info(
                "Connection removed: %s, total %d",
                connection_id,
                len(self.registry),
                extra={"connection_id": connection_id},
            )

    def connection_count(self, org_id: str | None = None) -> int:
        return self.registry.count(org_id)

    def connections_for_org(self, org_id: str) -> list[Connection]:
        return [c for c in self.registry.all() if c.org_id == org_id]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _targets(self, event: DomainEvent, event_filter: EventFilter | None) -> list[Connection]:
        if event_filter is None:
            return self.registry.all()
        if not event_filter.accepts_type(event.type):
            return []
        # Tenant scope always comes from the event itself.
        if event_filter.org_id != event.org_id:
            event_filter = dataclasses.replace(event_filter, org_id=event.org_id)
        return self.registry.filter(event_filter)

    def _write(self, connection: Connection, frame: str) -> bool:
        try:
            connection.transport.write(frame)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Write failed for connection %s: %s",
                connection.id,
                exc,
                extra={"connection_id": connection.id, "org_id": connection.org_id},
            )
            self.remove_connection(connection.id)
            return False
        return True

    def broadcast(self, event: DomainEvent, event_filter: EventFilter | None = None) -> BroadcastResult:
        """Write *event* to every matching connection.

        With no filter the event goes to every live connection. Failed
        connections are removed; the counts are for logging only.
        """
        targets = self._targets(event, event_filter)
        if not targets:
            logger.debug(
                "No subscribers for %s",
                event.type,
                extra={"event_type": event.type, "org_id": event.org_id},
            )
            return BroadcastResult(0, 0)

        frame = format_frame(self._next_id(), event.type, event.to_wire())
        sent = failed = 0
        for connection in targets:
            if self._write(connection, frame):
                sent += 1
            else:
                failed += 1

        logger.info(
            "Broadcast %s: %d sent, %d failed",
            event.type,
            sent,
            failed,
            extra={
                "event_type": event.type,
                "org_id": event.org_id,
                "location_id": event.location_id,
            },
        )
        return BroadcastResult(sent, failed)

    def broadcast_for(self, event: DomainEvent) -> BroadcastResult:
        """Broadcast scoped to the event's own tenant and location."""
        return self.broadcast(event, EventFilter(org_id=event.org_id, location_id=event.location_id))

    # ------------------------------------------------------------------
    # Heartbeat
    # ------------------------------------------------------------------

    def send_heartbeat(self) -> BroadcastResult:
        """Write a heartbeat frame to every connection, pruning failures."""
        now = datetime.now(timezone.utc)
        connections = self.registry.all()
        data: dict[str, Any] = {"timestamp": now.isoformat(), "connections": len(connections)}
        frame = format_frame(self._next_id(), HEARTBEAT, data)

        sent = failed = 0
        for connection in connections:
            if self._write(connection, frame):
                connection.last_heartbeat = now
                sent += 1
            else:
                failed += 1

        if connections:
            logger.debug("Heartbeat sent to %d connections, %d failed", sent, failed)
        return BroadcastResult(sent, failed)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                self.send_heartbeat()
            except Exception:
                logger.exception("Heartbeat round failed")

    @property
    def running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    def start(self) -> None:
        """Start the periodic heartbeat on the running loop. Idempotent."""
        if self.running:
            return
        self._heartbeat_task = asyncio.get_running_loop().create_task(
            self._heartbeat_loop(), name="vigor-sse-heartbeat"
        )

    async def shutdown(self) -> None:
        """Stop the heartbeat and close every connection."""
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        for connection in self.registry.all():
            self.remove_connection(connection.id)
        logger.info("Event broadcaster shut down")

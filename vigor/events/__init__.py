"""Real-time dashboard events: registry, broadcaster and wire codec."""

from vigor.events.broadcaster import BroadcastResult, EventBroadcaster
from vigor.events.registry import ConnectionRegistry
from vigor.events.transport import QueueTransport, Transport
from vigor.events.types import (
    Connection,
    DomainEvent,
    EventFilter,
    EventType,
    MembershipExpiringEvent,
    PaymentFailedEvent,
    VisitCheckinEvent,
    VisitCheckoutEvent,
    parse_event,
)

__all__ = [
    "BroadcastResult",
    "Connection",
    "ConnectionRegistry",
    "DomainEvent",
    "EventBroadcaster",
    "EventFilter",
    "EventType",
    "MembershipExpiringEvent",
    "PaymentFailedEvent",
    "QueueTransport",
    "Transport",
    "VisitCheckinEvent",
    "VisitCheckoutEvent",
    "parse_event",
]

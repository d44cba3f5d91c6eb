"""Live dashboard event types.

Domain events form a closed, tagged union keyed by ``type``:

- ``visit.checkin``        -- a member checked in at a gym
- ``visit.checkout``       -- a member checked out
- ``membership.expiring``  -- a membership is close to its end date
- ``payment.failed``       -- a charge attempt was declined

Every event carries exactly one ``orgId``; ``locationId = None`` marks a
tenant-wide event. On the wire the models serialize with camelCase keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from vigor.events.transport import Transport


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventType(str, Enum):
    VISIT_CHECKIN = "visit.checkin"
    VISIT_CHECKOUT = "visit.checkout"
    MEMBERSHIP_EXPIRING = "membership.expiring"
    PAYMENT_FAILED = "payment.failed"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class VisitCheckinPayload(_WireModel):
    visit_id: str
    member_id: str
    member_name: str
    gym_id: str
    gym_name: str
    checkin_at: datetime


class VisitCheckoutPayload(_WireModel):
    visit_id: str
    member_id: str
    member_name: str
    gym_id: str
    gym_name: str
    checkout_at: datetime
    duration_minutes: int = Field(ge=0)


class MembershipExpiringPayload(_WireModel):
    membership_id: str
    member_id: str
    member_name: str
    plan_name: str
    expires_at: datetime
    days_left: int


class PaymentFailedPayload(_WireModel):
    payment_id: str
    invoice_id: str
    member_id: str
    member_name: str
    amount_mxn_cents: int = Field(ge=0)
    reason: str
    retry_count: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class BaseEvent(_WireModel):
    id: str = Field(min_length=1)
    at: datetime = Field(default_factory=_utcnow)
    org_id: str = Field(min_length=1)
    location_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, as sent in the ``data:`` field."""
        return self.model_dump(mode="json", by_alias=True)


class VisitCheckinEvent(BaseEvent):
    type: Literal["visit.checkin"] = "visit.checkin"
    payload: VisitCheckinPayload


class VisitCheckoutEvent(BaseEvent):
    type: Literal["visit.checkout"] = "visit.checkout"
    payload: VisitCheckoutPayload


class MembershipExpiringEvent(BaseEvent):
    type: Literal["membership.expiring"] = "membership.expiring"
    payload: MembershipExpiringPayload


class PaymentFailedEvent(BaseEvent):
    type: Literal["payment.failed"] = "payment.failed"
    payload: PaymentFailedPayload


DomainEvent = Annotated[
    Union[VisitCheckinEvent, VisitCheckoutEvent, MembershipExpiringEvent, PaymentFailedEvent],
    Field(discriminator="type"),
]

domain_event_adapter: TypeAdapter[DomainEvent] = TypeAdapter(DomainEvent)

#: Payload model for each event kind.
PAYLOAD_MODELS: dict[EventType, type[_WireModel]] = {
    EventType.VISIT_CHECKIN: VisitCheckinPayload,
    EventType.VISIT_CHECKOUT: VisitCheckoutPayload,
    EventType.MEMBERSHIP_EXPIRING: MembershipExpiringPayload,
    EventType.PAYMENT_FAILED: PaymentFailedPayload,
}


def parse_event(data: dict[str, Any] | str | bytes) -> DomainEvent:
    """Validate a decoded (or raw JSON) event into its concrete variant."""
    if isinstance(data, (str, bytes)):
        return domain_event_adapter.validate_json(data)
    return domain_event_adapter.validate_python(data)


# ---------------------------------------------------------------------------
# Subscribers
# ---------------------------------------------------------------------------


@dataclass
class EventFilter:
    """Dispatch criteria for one broadcast; never stored.

    ``location_id = None`` means the event is tenant-wide. ``event_types``
    limits which kinds this dispatch applies to (``None`` = all).
    """

    org_id: str
    location_id: str | None = None
    event_types: frozenset[EventType] | None = None

    def accepts_type(self, event_type: str) -> bool:
        if self.event_types is None:
            return True
        return event_type in {t.value for t in self.event_types}


@dataclass(eq=False)
class Connection:
    """One subscriber's live stream, scoped to a tenant and optionally a location."""

    id: str
    org_id: str
    location_id: str | None
    user_id: str
    transport: Transport
    connected_at: datetime = field(default_factory=_utcnow)
    last_heartbeat: datetime = field(default_factory=_utcnow)

    def matches(self, event_filter: EventFilter) -> bool:
        if self.org_id != event_filter.org_id:
            return False
        if event_filter.location_id is None or self.location_id is None:
            return True
        return self.location_id == event_filter.location_id

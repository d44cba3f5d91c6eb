"""Typed event constructors for the business operations that feed the dashboard.

Check-in routes, the membership-expiry sweep and the payment webhook call
these after their own work has committed. Broadcasting is best-effort: any
failure is logged and swallowed so the triggering operation is unaffected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from vigor.events.broadcaster import BroadcastResult, EventBroadcaster
from vigor.events.types import (
    DomainEvent,
    MembershipExpiringEvent,
    MembershipExpiringPayload,
    PaymentFailedEvent,
    PaymentFailedPayload,
    VisitCheckinEvent,
    VisitCheckinPayload,
    VisitCheckoutEvent,
    VisitCheckoutPayload,
)

logger = logging.getLogger("vigor.events.emitters")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _emit(
    broadcaster: EventBroadcaster, kind: str, build: Callable[[str], DomainEvent]
) -> BroadcastResult | None:
    try:
        event = build(broadcaster.next_event_id())
        return broadcaster.broadcast_for(event)
    except Exception:
        logger.exception("Failed to broadcast %s", kind, extra={"event_type": kind})
        return None


def broadcast_visit_checkin(
    broadcaster: EventBroadcaster,
    *,
    org_id: str,
    visit_id: str,
    gym_id: str,
    gym_name: str,
    member_id: str,
    member_name: str,
    checkin_at: datetime | None = None,
) -> BroadcastResult | None:
    at = checkin_at or _now()
    return _emit(
        broadcaster,
        "visit.checkin",
        lambda event_id: VisitCheckinEvent(
            id=event_id,
            at=at,
            org_id=org_id,
            location_id=gym_id,
            payload=VisitCheckinPayload(
                visit_id=visit_id,
                member_id=member_id,
                member_name=member_name,
                gym_id=gym_id,
                gym_name=gym_name,
                checkin_at=at,
            ),
        ),
    )


def broadcast_visit_checkout(
    broadcaster: EventBroadcaster,
    *,
    org_id: str,
    visit_id: str,
    gym_id: str,
    gym_name: str,
    member_id: str,
    member_name: str,
    duration_minutes: int,
    checkout_at: datetime | None = None,
) -> BroadcastResult | None:
    at = checkout_at or _now()
    return _emit(
        broadcaster,
        "visit.checkout",
        lambda event_id: VisitCheckoutEvent(
            id=event_id,
            at=at,
            org_id=org_id,
            location_id=gym_id,
            payload=VisitCheckoutPayload(
                visit_id=visit_id,
                member_id=member_id,
                member_name=member_name,
                gym_id=gym_id,
                gym_name=gym_name,
                checkout_at=at,
                duration_minutes=duration_minutes,
            ),
        ),
    )


def broadcast_membership_expiring(
    broadcaster: EventBroadcaster,
    *,
    org_id: str,
    membership_id: str,
    member_id: str,
    member_name: str,
    plan_name: str,
    expires_at: datetime,
    days_left: int,
    at: datetime | None = None,
) -> BroadcastResult | None:
    # Memberships are org-wide.
    occurred_at = at or _now()
    return _emit(
        broadcaster,
        "membership.expiring",
        lambda event_id: MembershipExpiringEvent(
            id=event_id,
            at=occurred_at,
            org_id=org_id,
            location_id=None,
            payload=MembershipExpiringPayload(
                membership_id=membership_id,
                member_id=member_id,
                member_name=member_name,
                plan_name=plan_name,
                expires_at=expires_at,
                days_left=days_left,
            ),
        ),
    )


def broadcast_payment_failed(
    broadcaster: EventBroadcaster,
    *,
    org_id: str,
    payment_id: str,
    invoice_id: str,
    member_id: str,
    member_name: str,
    amount_mxn_cents: int,
    reason: str,
    retry_count: int = 0,
    at: datetime | None = None,
) -> BroadcastResult | None:
    # Payments are org-wide.
    occurred_at = at or _now()
    return _emit(
        broadcaster,
        "payment.failed",
        lambda event_id: PaymentFailedEvent(
            id=event_id,
            at=occurred_at,
            org_id=org_id,
            location_id=None,
            payload=PaymentFailedPayload(
                payment_id=payment_id,
                invoice_id=invoice_id,
                member_id=member_id,
                member_name=member_name,
                amount_mxn_cents=amount_mxn_cents,
                reason=reason,
                retry_count=retry_count,
            ),
        ),
    )

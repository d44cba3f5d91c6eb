"""Live dashboard event routes.

  GET  /v1/events            — Subscribe to tenant events (SSE)
  GET  /v1/events/subscribe  — Legacy subscription, all locations
  GET  /v1/events/health     — Broadcaster status (public)
  POST /v1/events/test       — Send a synthetic event (non-production only)
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.responses import StreamingResponse

from vigor.api.ratelimit import TEST_EVENT_LIMIT, limiter
from vigor.auth import TenantContext, require_role, require_tenant
from vigor.config import settings
from vigor.events.broadcaster import EventBroadcaster
from vigor.events.transport import QueueTransport
from vigor.events.types import Connection, EventType, parse_event
from vigor.exceptions import NotFoundError
from vigor.rbac import DASHBOARD_ROLES, Role
from vigor.validation import validate_subscription_query, validate_tenant_access

logger = logging.getLogger("vigor.api.events")

router = APIRouter(prefix="/v1/events", tags=["Events"])

SSE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def _open_stream(
    request: Request,
    broadcaster: EventBroadcaster,
    tenant: TenantContext,
    location_id: str | None,
) -> StreamingResponse:
    """Register a connection and hand its transport to a streaming response.

    The response is never finished here: it ends when the client disconnects
    or the broadcaster closes the transport.
    """
    queue_size = request.app.state.settings.subscriber_queue_size
    transport = QueueTransport(maxsize=queue_size)
    connection = Connection(
        id=str(uuid4()),
        org_id=tenant.company_id,
        location_id=location_id,
        user_id=tenant.user_id,
        transport=transport,
    )
    broadcaster.add_connection(connection)

    async def _generate():
        try:
            async for frame in transport.frames():
                yield frame
        finally:
            broadcaster.remove_connection(connection.id)

    return StreamingResponse(_generate(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.get(
    "",
    summary="Subscribe to real-time dashboard events",
    dependencies=[Depends(require_role(*DASHBOARD_ROLES))],
)
async def subscribe(
    request: Request,
    org_id: str | None = Query(default=None, alias="orgId", description="Organization UUID"),
    location_id: str | None = Query(
        default=None, alias="locationId", description="Gym UUID; omit for all locations"
    ),
    tenant: TenantContext = Depends(require_tenant),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    """Server-Sent Events stream scoped to the caller's tenant and optional location."""
    query = validate_subscription_query(org_id, location_id)
    validate_tenant_access(tenant.company_id, query.org_id)
    return _open_stream(request, broadcaster, tenant, query.location_id)


@router.get(
    "/subscribe",
    summary="Legacy subscription without location filtering",
    dependencies=[Depends(require_role(*DASHBOARD_ROLES))],
)
async def subscribe_legacy(
    request: Request,
    tenant: TenantContext = Depends(require_tenant),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    return _open_stream(request, broadcaster, tenant, None)


@router.get("/health", summary="Event broadcaster health")
async def events_health(broadcaster: EventBroadcaster = Depends(get_broadcaster)):
    return {
        "status": "ok",
        "service": "event-broadcaster",
        "subscribers": broadcaster.connection_count(),
        "heartbeat": broadcaster.running,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Test events
# ---------------------------------------------------------------------------


class SyntheticEventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: EventType = EventType.VISIT_CHECKIN
    location_id: str | None = Field(default=None, alias="locationId", max_length=64)
    payload: dict[str, Any] | None = None


def _sample_payload(event_type: EventType, location_id: str | None) -> dict[str, Any]:
    now = datetime.now(timezone.utc).isoformat()
    gym_id = location_id or "test-gym-789"
    if event_type is EventType.VISIT_CHECKIN:
        return {
            "visitId": "test-visit-123",
            "memberId": "test-member-456",
            "memberName": "Test Member",
            "gymId": gym_id,
            "gymName": "Test Gym",
            "checkinAt": now,
        }
    if event_type is EventType.VISIT_CHECKOUT:
        return {
            "visitId": "test-visit-123",
            "memberId": "test-member-456",
            "memberName": "Test Member",
            "gymId": gym_id,
            "gymName": "Test Gym",
            "checkoutAt": now,
            "durationMinutes": 45,
        }
    if event_type is EventType.MEMBERSHIP_EXPIRING:
        return {
            "membershipId": "test-membership-321",
            "memberId": "test-member-456",
            "memberName": "Test Member",
            "planName": "Mensual",
            "expiresAt": now,
            "daysLeft": 7,
        }
    return {
        "paymentId": "test-payment-654",
        "invoiceId": "test-invoice-987",
        "memberId": "test-member-456",
        "memberName": "Test Member",
        "amountMxnCents": 59900,
        "reason": "card_declined",
        "retryCount": 1,
    }


@router.post(
    "/test",
    summary="Broadcast a synthetic event to the caller's tenant",
    dependencies=[Depends(require_role(Role.OWNER, Role.MANAGER))],
)
@limiter.limit(TEST_EVENT_LIMIT)
async def send_test_event(
    request: Request,
    req: SyntheticEventRequest,
    tenant: TenantContext = Depends(require_tenant),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    if os.environ.get("VIGOR_ENVIRONMENT", settings.environment).lower() == "production":
        raise NotFoundError("Not found")

    payload = req.payload if req.payload is not None else _sample_payload(req.type, req.location_id)
    try:
        event = parse_event(
            {
                "id": f"test-{broadcaster.next_event_id()}",
                "type": req.type.value,
                "orgId": tenant.company_id,
                "locationId": req.location_id,
                "payload": payload,
            }
        )
    except ValidationError as e:
        detail = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise HTTPException(status_code=422, detail=detail) from e

    result = broadcaster.broadcast_for(event)
    logger.info(
        "Test event %s sent by %s",
        event.type,
        tenant.user_id,
        extra={"event_type": event.type, "org_id": tenant.company_id},
    )
    return {
        "message": "Test event sent",
        "event": {
            "type": event.type,
            "orgId": event.org_id,
            "locationId": event.location_id,
            "payload": event.payload.model_dump(mode="json", by_alias=True),
        },
        "sent": result.sent,
        "subscriberCount": broadcaster.connection_count(tenant.company_id),
    }

"""Subscription query validation.

Syntactic checks run before the tenant-match check, so a request that is
both malformed and cross-tenant is reported as malformed (422), never as
forbidden (403).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from vigor.exceptions import SubscriptionValidationError, TenantAccessError

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

ORG_ID_HINT = "Pass ?orgId identical to user.company.id"


@dataclass(frozen=True)
class SubscriptionQuery:
    org_id: str
    location_id: str | None = None


def is_valid_identifier(value: str | None) -> bool:
    """True when *value* is a UUID-shaped tenant/location identifier."""
    return bool(value) and UUID_RE.match(value.strip()) is not None  # type: ignore[union-attr]


def validate_subscription_query(
    org_id: str | None, location_id: str | None = None
) -> SubscriptionQuery:
    """Normalize ``orgId``/``locationId`` query values.

    Raises:
        SubscriptionValidationError: ``INVALID_ORG_ID`` when *org_id* is missing
            or malformed, ``INVALID_LOCATION_ID`` for a malformed *location_id*.
    """
    org = (org_id or "").strip()
    if not org:
        raise SubscriptionValidationError(
            "INVALID_ORG_ID", "orgId is required", "orgId", hint=ORG_ID_HINT
        )
    if not is_valid_identifier(org):
        raise SubscriptionValidationError(
            "INVALID_ORG_ID", "orgId must be a valid UUID", "orgId", hint=ORG_ID_HINT
        )

    location = (location_id or "").strip() or None
    if location is not None and not is_valid_identifier(location):
        raise SubscriptionValidationError(
            "INVALID_LOCATION_ID", "locationId must be a valid UUID", "locationId"
        )

    return SubscriptionQuery(org_id=org, location_id=location)


def same_tenant(company_id: str, org_id: str) -> bool:
    """Tenant ids compare trimmed and case-insensitively."""
    return company_id.strip().lower() == org_id.strip().lower()


def validate_tenant_access(company_id: str, org_id: str) -> None:
    """Raise :class:`TenantAccessError` unless *org_id* is the caller's tenant."""
    if not same_tenant(company_id, org_id):
        raise TenantAccessError("Access denied to organization data")

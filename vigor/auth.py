"""Bearer-token authentication and tenant resolution for Vigor.

Authentication is controlled by environment variables:
- ``VIGOR_AUTH_PROVIDER`` — comma-separated providers: ``jwt`` (default),
  ``supabase``. Several providers are tried in order.
- ``VIGOR_JWT_SECRET`` / ``VIGOR_SUPABASE_JWT_SECRET`` — signing secrets.

Clients supply credentials via:
- ``Authorization: Bearer <token>`` header (preferred)
- ``accessToken`` or ``auth-token`` cookie (browsers' EventSource cannot
  set headers)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from fastapi import Request

from vigor.auth_providers.base import AuthResult
from vigor.auth_providers.factory import create_providers
from vigor.config import settings
from vigor.exceptions import AuthConfigurationError, AuthenticationError, AuthorizationError
from vigor.rbac import has_role
from vigor.validation import same_tenant

_audit_logger = logging.getLogger("vigor.audit")

TOKEN_COOKIES: tuple[str, ...] = ("accessToken", "auth-token")


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant of an authenticated caller."""

    company_id: str
    role: str
    user_id: str


def _extract_token(request: Request) -> str | None:
    """Extract the bearer token. Priority: Authorization header > cookies."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None

    for name in TOKEN_COOKIES:
        value = request.cookies.get(name)
        if value:
            return value
    return None


def _audit_failure(request: Request, reason: str, **extra: object) -> None:
    _audit_logger.warning(
        "Auth failure (%s): %s %s from %s",
        reason,
        request.method,
        request.url.path,
        request.client.host if request.client else "unknown",
        extra={
            "event_category": "audit",
            "action": "auth_failure",
            "reason": reason,
            "path": request.url.path,
            **extra,
        },
    )


async def require_auth(request: Request) -> AuthResult:
    """FastAPI dependency that enforces authentication.

    The :class:`AuthResult` is attached to ``request.state.auth`` so
    downstream handlers can inspect identity, roles and tenant.

    Raises:
        AuthConfigurationError 503: no signing secret is configured.
        AuthenticationError 401: token missing or not valid.
    """
    # Read config via os.environ so monkeypatch works in tests.
    provider_names = [
        n.strip()
        for n in os.environ.get("VIGOR_AUTH_PROVIDER", settings.auth_provider).split(",")
        if n.strip()
    ]
    try:
        provider = create_providers(
            provider_names,
            jwt_secret=os.environ.get("VIGOR_JWT_SECRET", settings.jwt_secret),
            supabase_jwt_secret=os.environ.get(
                "VIGOR_SUPABASE_JWT_SECRET", settings.supabase_jwt_secret
            ),
        )
    except ValueError as e:
        raise AuthConfigurationError(str(e)) from e

    token = _extract_token(request)
    if token is None:
        _audit_failure(request, "no_token")
        raise AuthenticationError("Authentication required")

    result = await provider.authenticate(token)
    if not result.authenticated:
        _audit_failure(request, "invalid_token", provider=result.provider, error=result.error)
        raise AuthenticationError("Invalid or expired token")

    request.state.auth = result
    return result


async def require_tenant(request: Request) -> TenantContext:
    """Dependency resolving the caller's company; requires :func:`require_auth` first.

    An ``X-Org-Id`` header, when sent, must name the caller's own company.
    """
    auth: AuthResult | None = getattr(request.state, "auth", None)
    if auth is None:
        auth = await require_auth(request)

    if not auth.company_id:
        raise AuthorizationError("User has no company associated. Please complete onboarding.")

    header_org = request.headers.get("X-Org-Id")
    if header_org and not same_tenant(header_org, auth.company_id):
        raise AuthorizationError("Access denied to specified organization")

    tenant = TenantContext(
        company_id=auth.company_id,
        role=auth.roles[0] if auth.roles else "",
        user_id=auth.identity,
    )
    request.state.tenant = tenant
    return tenant


def require_role(*roles: str):
    """Dependency factory: require the authenticated user to have one of the given roles.

    Usage::

        @router.post("/test", dependencies=[Depends(require_role("owner", "manager"))])
        async def send_test(): ...
    """

    async def _check(request: Request) -> None:
        auth: AuthResult | None = getattr(request.state, "auth", None)
        if auth is None:
            auth = await require_auth(request)
        if not any(has_role(auth.roles, r) for r in roles):
            raise AuthorizationError(f"Requires one of roles: {', '.join(roles)}")

    return _check

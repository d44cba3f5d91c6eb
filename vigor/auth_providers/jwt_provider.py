"""JWT-based authentication providers (API access tokens, Supabase)."""

from __future__ import annotations

import logging

import jwt

from vigor.auth_providers.base import AuthResult
from vigor.rbac import normalize_role

logger = logging.getLogger("vigor.auth_providers.jwt")


class AccessTokenProvider:
    """Authenticate the API's own HS256 access tokens.

    Tokens carry ``userId``, ``email``, ``role`` and ``companyId`` claims.
    """

    name = "jwt"

    def __init__(self, jwt_secret: str) -> None:
        self._jwt_secret = jwt_secret

    async def authenticate(self, token: str) -> AuthResult:
        try:
            payload = jwt.decode(
                token,
                self._jwt_secret,
                algorithms=["HS256"],
                options={"require": ["userId", "exp"]},
            )
        except jwt.PyJWTError as e:
            return AuthResult(
                authenticated=False,
                provider=self.name,
                error=f"Invalid or expired token: {e}",
            )
        role = payload.get("role")
        return AuthResult(
            authenticated=True,
            identity=str(payload["userId"]),
            provider=self.name,
            roles=[role] if role else [],
            company_id=payload.get("companyId"),
            claims=payload,
        )


class SupabaseJWTProvider:
    """Authenticate via Supabase JWT tokens.

    The role lives in ``user_metadata.role`` and the tenant in
    ``app_metadata.company_id`` (falling back to ``user_metadata``).
    """

    name = "supabase"

    def __init__(self, jwt_secret: str) -> None:
        self._jwt_secret = jwt_secret

    async def authenticate(self, token: str) -> AuthResult:
        try:
            payload = jwt.decode(
                token, self._jwt_secret, algorithms=["HS256"], audience="authenticated"
            )
        except jwt.PyJWTError as e:
            return AuthResult(
                authenticated=False,
                provider=self.name,
                error=f"JWT validation failed: {e}",
            )
        user_metadata = payload.get("user_metadata") or {}
        app_metadata = payload.get("app_metadata") or {}
        company_id = app_metadata.get("company_id") or user_metadata.get("company_id")
        return AuthResult(
            authenticated=True,
            identity=str(payload.get("sub", "")),
            provider=self.name,
            roles=[normalize_role(user_metadata.get("role"))],
            company_id=company_id,
            claims=payload,
        )

"""Factory for creating auth providers based on configuration."""

from __future__ import annotations

import logging

from vigor.auth_providers.base import AuthProvider, AuthResult
from vigor.auth_providers.jwt_provider import AccessTokenProvider, SupabaseJWTProvider

logger = logging.getLogger("vigor.auth_providers.factory")


def create_provider(
    provider_name: str,
    *,
    jwt_secret: str | None = None,
    supabase_jwt_secret: str | None = None,
) -> AuthProvider:
    """Create an auth provider by name."""
    if provider_name == "jwt":
        if not jwt_secret:
            msg = "jwt_secret required for jwt auth provider"
            raise ValueError(msg)
        return AccessTokenProvider(jwt_secret)

    if provider_name == "supabase":
        if not supabase_jwt_secret:
            msg = "supabase_jwt_secret required for supabase auth provider"
            raise ValueError(msg)
        return SupabaseJWTProvider(supabase_jwt_secret)

    msg = f"Unknown auth provider: {provider_name}"
    raise ValueError(msg)


def create_providers(
    provider_names: list[str],
    *,
    jwt_secret: str | None = None,
    supabase_jwt_secret: str | None = None,
) -> AuthProvider:
    """Create one provider, or a :class:`MultiProvider` when several are configured."""
    providers = [
        create_provider(
            name, jwt_secret=jwt_secret, supabase_jwt_secret=supabase_jwt_secret
        )
        for name in provider_names
    ]
    if len(providers) == 1:
        return providers[0]
    return MultiProvider(providers)


class MultiProvider:
    """Try multiple auth providers in order."""

    name = "multi"

    def __init__(self, providers: list[AuthProvider]) -> None:
        self._providers = providers

    async def authenticate(self, token: str) -> AuthResult:
        for provider in self._providers:
            result = await provider.authenticate(token)
            if result.authenticated:
                return result
            logger.debug("Provider %s rejected token: %s", provider.name, result.error)
        return AuthResult(
            authenticated=False,
            provider="multi",
            error="No provider could authenticate the token",
        )

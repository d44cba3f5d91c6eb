"""Tests for pluggable bearer-token authentication providers."""

from __future__ import annotations

import time

import jwt
import pytest
from conftest import JWT_SECRET, ORG_ID, SUPABASE_SECRET, make_token

from vigor.auth_providers.base import AuthProvider, AuthResult
from vigor.auth_providers.factory import MultiProvider, create_provider, create_providers
from vigor.auth_providers.jwt_provider import AccessTokenProvider, SupabaseJWTProvider


def _supabase_token(
    *,
    secret: str = SUPABASE_SECRET,
    role: str | None = "manager",
    app_company: str | None = ORG_ID,
    user_company: str | None = None,
    audience: str = "authenticated",
) -> str:
    user_metadata = {}
    if role is not None:
        user_metadata["role"] = role
    if user_company is not None:
        user_metadata["company_id"] = user_company
    app_metadata = {"company_id": app_company} if app_company else {}
    return jwt.encode(
        {
            "sub": "sb-user-1",
            "aud": audience,
            "exp": int(time.time()) + 3600,
            "user_metadata": user_metadata,
            "app_metadata": app_metadata,
        },
        secret,
        algorithm="HS256",
    )


# ---------------------------------------------------------------------------
# AuthResult
# ---------------------------------------------------------------------------


class TestAuthResult:
    def test_defaults(self):
        r = AuthResult(authenticated=False)
        assert r.identity == ""
        assert r.roles == []
        assert r.company_id is None
        assert r.claims == {}
        assert r.error is None


# ---------------------------------------------------------------------------
# AccessTokenProvider
# ---------------------------------------------------------------------------


class TestAccessTokenProvider:
    @pytest.fixture
    def provider(self):
        return AccessTokenProvider(JWT_SECRET)

    def test_satisfies_protocol(self, provider):
        assert isinstance(provider, AuthProvider)

    async def test_valid_token(self, provider):
        result = await provider.authenticate(make_token(role="manager", user_id="u-42"))
        assert result.authenticated is True
        assert result.provider == "jwt"
        assert result.identity == "u-42"
        assert result.roles == ["manager"]
        assert result.company_id == ORG_ID
        assert result.claims["email"] == "u-42@example.com"

    async def test_expired_token(self, provider):
        result = await provider.authenticate(make_token(expires_in=-60))
        assert result.authenticated is False
        assert "expired" in result.error.lower()

    async def test_wrong_secret(self, provider):
        result = await provider.authenticate(make_token(secret="another-secret-0123456789abcdefgh"))
        assert result.authenticated is False

    async def test_missing_user_id(self, provider):
        token = jwt.encode({"exp": int(time.time()) + 60}, JWT_SECRET, algorithm="HS256")
        result = await provider.authenticate(token)
        assert result.authenticated is False

    async def test_garbage(self, provider):
        result = await provider.authenticate("not.a.jwt")
        assert result.authenticated is False


# ---------------------------------------------------------------------------
# SupabaseJWTProvider
# ---------------------------------------------------------------------------


class TestSupabaseJWTProvider:
    @pytest.fixture
    def provider(self):
        return SupabaseJWTProvider(SUPABASE_SECRET)

    async def test_valid_token(self, provider):
        result = await provider.authenticate(_supabase_token())
        assert result.authenticated is True
        assert result.provider == "supabase"
        assert result.identity == "sb-user-1"
        assert result.roles == ["manager"]
        assert result.company_id == ORG_ID

    async def test_admin_and_missing_role_map_to_owner(self, provider):
        admin = await provider.authenticate(_supabase_token(role="admin"))
        missing = await provider.authenticate(_supabase_token(role=None))
        assert admin.roles == ["owner"]
        assert missing.roles == ["owner"]

    async def test_company_falls_back_to_user_metadata(self, provider):
        result = await provider.authenticate(_supabase_token(app_company=None, user_company=ORG_ID))
        assert result.company_id == ORG_ID

    async def test_wrong_audience(self, provider):
        result = await provider.authenticate(_supabase_token(audience="anon"))
        assert result.authenticated is False
        assert "JWT validation failed" in result.error


# ---------------------------------------------------------------------------
# Factory / MultiProvider
# ---------------------------------------------------------------------------


class TestFactory:
    def test_create_jwt(self):
        assert isinstance(create_provider("jwt", jwt_secret=JWT_SECRET), AccessTokenProvider)

    def test_create_supabase(self):
        provider = create_provider("supabase", supabase_jwt_secret=SUPABASE_SECRET)
        assert isinstance(provider, SupabaseJWTProvider)

    def test_missing_secret(self):
        with pytest.raises(ValueError, match="jwt_secret"):
            create_provider("jwt")

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown auth provider"):
            create_provider("ldap", jwt_secret=JWT_SECRET)

    def test_single_name_returns_provider(self):
        assert isinstance(create_providers(["jwt"], jwt_secret=JWT_SECRET), AccessTokenProvider)

    def test_several_names_return_multi(self):
        provider = create_providers(
            ["jwt", "supabase"], jwt_secret=JWT_SECRET, supabase_jwt_secret=SUPABASE_SECRET
        )
        assert isinstance(provider, MultiProvider)


class TestMultiProvider:
    @pytest.fixture
    def provider(self):
        return MultiProvider([AccessTokenProvider(JWT_SECRET), SupabaseJWTProvider(SUPABASE_SECRET)])

    async def test_first_provider_wins(self, provider):
        result = await provider.authenticate(make_token())
        assert result.provider == "jwt"

    async def test_falls_through_to_second(self, provider):
        result = await provider.authenticate(_supabase_token())
        assert result.authenticated is True
        assert result.provider == "supabase"

    async def test_all_reject(self, provider):
        result = await provider.authenticate("nope")
        assert result.authenticated is False
        assert result.provider == "multi"

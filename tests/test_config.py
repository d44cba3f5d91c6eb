"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vigor.config import Settings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for name in ("VIGOR_ENVIRONMENT", "VIGOR_HEARTBEAT_INTERVAL_MS", "VIGOR_AUTH_PROVIDER"):
            monkeypatch.delenv(name, raising=False)
        s = Settings()
        assert s.environment == "development"
        assert s.heartbeat_interval_ms == 15000
        assert s.heartbeat_interval == 15.0
        assert s.client_max_retries == 5
        assert s.auth_provider_names == ["jwt"]
        assert not s.is_production


class TestFromEnvironment:
    def test_heartbeat_interval(self, monkeypatch):
        monkeypatch.setenv("VIGOR_HEARTBEAT_INTERVAL_MS", "2500")
        assert Settings().heartbeat_interval == 2.5

    def test_heartbeat_interval_lower_bound(self, monkeypatch):
        monkeypatch.setenv("VIGOR_HEARTBEAT_INTERVAL_MS", "10")
        with pytest.raises(ValidationError):
            Settings()

    def test_provider_list_is_normalized(self, monkeypatch):
        monkeypatch.setenv("VIGOR_AUTH_PROVIDER", " Supabase , jwt ")
        assert Settings().auth_provider_names == ["supabase", "jwt"]

    def test_unknown_provider_rejected(self, monkeypatch):
        monkeypatch.setenv("VIGOR_AUTH_PROVIDER", "ldap")
        with pytest.raises(ValidationError):
            Settings()

    def test_environment_validated(self, monkeypatch):
        monkeypatch.setenv("VIGOR_ENVIRONMENT", "staging")
        with pytest.raises(ValidationError):
            Settings()

    def test_production_flag(self, monkeypatch):
        monkeypatch.setenv("VIGOR_ENVIRONMENT", "PRODUCTION")
        assert Settings().is_production

    def test_cors_origin_list(self, monkeypatch):
        monkeypatch.setenv("VIGOR_CORS_ORIGINS", "https://a.test, https://b.test,")
        assert Settings().cors_origin_list == ["https://a.test", "https://b.test"]

    def test_log_format_validated(self, monkeypatch):
        monkeypatch.setenv("VIGOR_LOG_FORMAT", "xml")
        with pytest.raises(ValidationError):
            Settings()

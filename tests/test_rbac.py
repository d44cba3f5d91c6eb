"""Tests for the staff role hierarchy."""

from __future__ import annotations

import pytest

from vigor.rbac import DASHBOARD_ROLES, ROLE_INCLUDES, Role, has_role, normalize_role


class TestRoleHierarchy:
    def test_every_role_includes_itself(self):
        for role in Role:
            assert role in ROLE_INCLUDES[role]

    def test_owner_includes_manager_and_staff(self):
        assert has_role(["owner"], "manager")
        assert has_role(["owner"], "staff")

    def test_manager_does_not_include_owner(self):
        assert not has_role(["manager"], "owner")

    def test_member_has_no_dashboard_role(self):
        assert not any(has_role(["member"], r) for r in DASHBOARD_ROLES)

    def test_partner_admin_is_separate(self):
        assert has_role(["partner_admin"], "partner_admin")
        assert not has_role(["partner_admin"], "staff")

    def test_unknown_roles_are_ignored(self):
        assert not has_role(["superuser"], "staff")
        assert has_role(["superuser", "staff"], "staff")

    def test_empty_roles(self):
        assert not has_role([], "staff")


class TestNormalizeRole:
    @pytest.mark.parametrize(("raw", "expected"), [(None, "owner"), ("", "owner"), ("admin", "owner")])
    def test_defaults_to_owner(self, raw, expected):
        assert normalize_role(raw) == expected

    def test_passthrough(self):
        assert normalize_role("staff") == "staff"

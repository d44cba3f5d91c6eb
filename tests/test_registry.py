"""Tests for the in-memory connection registry."""

from __future__ import annotations

from conftest import GYM_A, GYM_B, ORG_ID, OTHER_ORG_ID

from vigor.events.registry import ConnectionRegistry
from vigor.events.types import EventFilter


class TestAddRemove:
    def test_add_and_get(self, make_connection):
        registry = ConnectionRegistry()
        conn = make_connection()
        registry.add(conn)
        assert len(registry) == 1
        assert conn.id in registry
        assert registry.get(conn.id) is conn

    def test_add_same_id_replaces_entry(self, make_connection):
        registry = ConnectionRegistry()
        first = make_connection(connection_id="c1")
        second = make_connection(connection_id="c1", location_id=GYM_A)
        registry.add(first)
        registry.add(second)
        assert len(registry) == 1
        assert registry.get("c1") is second

    def test_remove_closes_transport(self, make_connection):
        registry = ConnectionRegistry()
        conn = make_connection()
        registry.add(conn)
        assert registry.remove(conn.id) is True
        assert conn.id not in registry
        assert conn.transport.closed
        assert conn.transport.close_calls == 1

    def test_remove_is_idempotent(self, make_connection):
        registry = ConnectionRegistry()
        conn = make_connection()
        registry.add(conn)
        registry.remove(conn.id)
        assert registry.remove(conn.id) is False
        assert registry.remove("never-registered") is False
        assert conn.transport.close_calls == 1

    def test_remove_skips_close_on_closed_transport(self, make_connection):
        registry = ConnectionRegistry()
        conn = make_connection()
        conn.transport.close()
        registry.add(conn)
        registry.remove(conn.id)
        assert conn.transport.close_calls == 1

    def test_close_error_does_not_propagate(self, make_connection):
        registry = ConnectionRegistry()
        conn = make_connection()

        def _boom():
            raise RuntimeError("socket already gone")

        conn.transport.close = _boom
        registry.add(conn)
        assert registry.remove(conn.id) is True
        assert conn.id not in registry


class TestFilter:
    def _populate(self, make_connection):
        registry = ConnectionRegistry()
        conns = {
            "org_wide": make_connection(ORG_ID),
            "gym_a": make_connection(ORG_ID, GYM_A),
            "gym_b": make_connection(ORG_ID, GYM_B),
            "other": make_connection(OTHER_ORG_ID),
        }
        for conn in conns.values():
            registry.add(conn)
        return registry, conns

    def test_location_event_reaches_matching_and_org_wide(self, make_connection):
        registry, conns = self._populate(make_connection)
        matched = registry.filter(EventFilter(org_id=ORG_ID, location_id=GYM_A))
        assert {c.id for c in matched} == {conns["org_wide"].id, conns["gym_a"].id}

    def test_tenant_wide_event_reaches_every_location(self, make_connection):
        registry, conns = self._populate(make_connection)
        matched = registry.filter(EventFilter(org_id=ORG_ID))
        assert {c.id for c in matched} == {
            conns["org_wide"].id,
            conns["gym_a"].id,
            conns["gym_b"].id,
        }

    def test_never_crosses_tenants(self, make_connection):
        registry, conns = self._populate(make_connection)
        for location in (None, GYM_A, GYM_B):
            matched = registry.filter(EventFilter(org_id=OTHER_ORG_ID, location_id=location))
            assert [c.id for c in matched] == [conns["other"].id]

    def test_unknown_org_matches_nothing(self, make_connection):
        registry, _ = self._populate(make_connection)
        assert registry.filter(EventFilter(org_id="33333333-3333-4333-8333-333333333333")) == []

    def test_count_by_org(self, make_connection):
        registry, _ = self._populate(make_connection)
        assert registry.count() == 4
        assert registry.count(ORG_ID) == 3
        assert registry.count(OTHER_ORG_ID) == 1

    def test_all_is_a_snapshot(self, make_connection):
        registry, conns = self._populate(make_connection)
        snapshot = registry.all()
        registry.remove(conns["gym_a"].id)
        assert len(snapshot) == 4
        assert len(registry.all()) == 3

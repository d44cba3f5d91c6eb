"""Role-Based Access Control for Vigor.

Defines the staff role hierarchy used by the ``require_role`` dependency
in ``auth.py``.

Roles (highest → lowest privilege):
    owner          — Full access to the company account
    manager        — Runs one or more gyms, sends test events
    staff          — Front desk; may watch the live dashboard
    partner_admin  — External partner scoped to assigned gyms
    member         — End customer; no dashboard access
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Enumerated platform roles."""

    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"
    PARTNER_ADMIN = "partner_admin"
    MEMBER = "member"


#: Mapping from each role to the set of roles it implicitly includes.
ROLE_INCLUDES: dict[Role, frozenset[Role]] = {
    Role.OWNER: frozenset({Role.OWNER, Role.MANAGER, Role.STAFF}),
    Role.MANAGER: frozenset({Role.MANAGER, Role.STAFF}),
    Role.STAFF: frozenset({Role.STAFF}),
    Role.PARTNER_ADMIN: frozenset({Role.PARTNER_ADMIN}),
    Role.MEMBER: frozenset({Role.MEMBER}),
}

#: Roles allowed to open the live dashboard stream.
DASHBOARD_ROLES: tuple[Role, ...] = (Role.OWNER, Role.MANAGER, Role.STAFF)


def normalize_role(raw: str | None) -> str:
    """Map external role names onto platform roles (``admin`` and missing → ``owner``)."""
    if not raw:
        return Role.OWNER.value
    if raw == "admin":
        return Role.OWNER.value
    return raw


def has_role(user_roles: list[str], required: str) -> bool:
    """Check if *user_roles* satisfy *required*, respecting hierarchy."""
    for r in user_roles:
        try:
            role = Role(r)
        except ValueError:
            continue
        if required in ROLE_INCLUDES.get(role, frozenset()):
            return True
    return False

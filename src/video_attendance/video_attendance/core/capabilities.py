"""Role -> capability table.

Controllers ask for a capability, never for a role string.
"""
from __future__ import annotations

from enum import Enum

from .enums import Role


class Capability(str, Enum):
    TRACK_PROGRESS = "track_progress"
    VIEW_REPORTS = "view_reports"
    OVERRIDE_ATTENDANCE = "override_attendance"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset({Capability.VIEW_REPORTS, Capability.OVERRIDE_ATTENDANCE}),
    Role.LECTURER: frozenset({Capability.VIEW_REPORTS, Capability.OVERRIDE_ATTENDANCE}),
    Role.STUDENT: frozenset({Capability.TRACK_PROGRESS}),
}


def has_capability(role: Role | str | None, capability: Capability) -> bool:
    if role is None:
        return False
    try:
        role = Role(role)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES.get(role, frozenset())

"""
Role-based authorization policy for maintenance operations.

One policy function per operation. Each takes the acting user (plus the
request it acts on, where there is one) and returns a PolicyDecision; the
lifecycle service calls ``.enforce()`` so the state machine itself stays free
of role branching.

Usage:
    from gearguard.services.permission import ActingUser, can_set_stage

    decision = can_set_stage(actor, request)
    if not decision.allowed:
        print(decision.reason)

    can_set_stage(actor, request).enforce("request.set_stage")  # raises AuthorizationError
"""

from dataclasses import dataclass

from gearguard.core.exceptions import AuthorizationError
from gearguard.models.maintenance import TYPE_PREVENTIVE
from gearguard.models.user import ROLE_MANAGER, ROLE_TECHNICIAN, ROLE_USER


@dataclass(frozen=True)
class ActingUser:
    """Who is performing an operation: id, role and (for technicians) team."""

    id: int
    role: str
    team_id: int | None = None
    name: str = ""

    @classmethod
    def from_user(cls, user) -> "ActingUser":
        return cls(id=user.id, role=user.role, team_id=user.team_id, name=user.name)

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    @property
    def is_technician(self) -> bool:
        return self.role == ROLE_TECHNICIAN


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: str | None = None

    def enforce(self, action: str | None = None) -> None:
        if not self.allowed:
            raise AuthorizationError(self.reason or "Not allowed", action=action)


ALLOW = PolicyDecision(True)


def _deny(reason: str) -> PolicyDecision:
    return PolicyDecision(False, reason)


def _same_team(actor: ActingUser, team_id) -> bool:
    return actor.team_id is not None and actor.team_id == team_id


# ── Request lifecycle policies ───────────────────────────────────────────────


def can_create_request(actor: ActingUser, request_type: str) -> PolicyDecision:
    if request_type == TYPE_PREVENTIVE and not actor.is_manager:
        return _deny("Only managers can create preventive maintenance requests")
    return ALLOW


def can_set_stage(actor: ActingUser, request) -> PolicyDecision:
    if actor.role == ROLE_USER:
        return _deny("Users cannot change request stage")
    if actor.is_technician and not _same_team(actor, request.team_id):
        return _deny("You can only update your team's requests")
    return ALLOW


def can_assign_technician(actor: ActingUser, request, technician_id) -> PolicyDecision:
    """Technicians may only self-assign or unassign, within their own team."""
    if actor.is_technician:
        if technician_id is not None and technician_id != actor.id:
            return _deny("Technicians can only assign themselves to requests")
        if not _same_team(actor, request.team_id):
            return _deny("You can only assign yourself to your team's requests")
    return ALLOW


def can_complete(actor: ActingUser, request) -> PolicyDecision:
    if actor.role == ROLE_USER:
        return _deny("Users cannot complete requests")
    if actor.is_technician and request.technician_id != actor.id:
        return _deny("Only the assigned technician can complete this request")
    return ALLOW


def can_update_details(actor: ActingUser, request) -> PolicyDecision:
    # Any authenticated role may edit details of an open request.
    return ALLOW


def can_delete_request(actor: ActingUser, request) -> PolicyDecision:
    if not actor.is_manager:
        return _deny("Only managers can delete requests")
    return ALLOW


# ── Administration ───────────────────────────────────────────────────────────


def can_manage(actor: ActingUser, what: str = "this resource") -> PolicyDecision:
    """Equipment, team and user administration is reserved to managers."""
    if not actor.is_manager:
        return _deny(f"Only managers can manage {what}")
    return ALLOW


def visible_team_id(actor: ActingUser) -> int | None:
    """Team a list query must be restricted to (technicians see only their team)."""
    if actor.is_technician and actor.team_id is not None:
        return actor.team_id
    return None

"""Authorization matrix — who may move an appointment from which status to which.

Pure data plus two lookups. The state machine consults it for every request;
the UI may consult it to decide which buttons to offer, but its answer there
is only a hint.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lawconsult.models.enums import ActorRole, AppointmentStatus

S = AppointmentStatus


class Permission(str, Enum):
    DENIED = "denied"
    ALLOWED = "allowed"
    REASON_REQUIRED = "reason_required"


@dataclass(frozen=True)
class Rule:
    """Outcome of a matrix lookup.

    ``reason_field`` names the appointment field the reason is written to;
    ``notice_required`` marks edges gated by the client cancellation notice.
    """

    permission: Permission
    reason_field: str | None = None
    notice_required: bool = False

    @property
    def allowed(self) -> bool:
        return self.permission is not Permission.DENIED

    @property
    def requires_reason(self) -> bool:
        return self.permission is Permission.REASON_REQUIRED


DENIED = Rule(Permission.DENIED)
_ALLOWED = Rule(Permission.ALLOWED)
_REJECT = Rule(Permission.REASON_REQUIRED, reason_field="reject_reason")
_CLIENT_CANCEL = Rule(Permission.REASON_REQUIRED, reason_field="cancel_reason", notice_required=True)
_ADMIN_OVERRIDE = Rule(Permission.REASON_REQUIRED, reason_field="admin_reason")

# Ordinary lifecycle graph: {current: {targets}}. Terminal states have no exits.
LIFECYCLE_EDGES: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.REJECTED, S.COMPLETED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.REJECTED: frozenset(),
}

# {role: {current: {target: rule}}}; anything missing is DENIED
AUTHORIZATION_MATRIX: dict[ActorRole, dict[AppointmentStatus, dict[AppointmentStatus, Rule]]] = {
    ActorRole.LAWYER: {
        S.PENDING: {
            S.CONFIRMED: _ALLOWED,
            S.REJECTED: _REJECT,
            S.COMPLETED: _ALLOWED,
            S.CANCELLED: _ALLOWED,
        },
        S.CONFIRMED: {
            S.COMPLETED: _ALLOWED,
            S.CANCELLED: _ALLOWED,
        },
    },
    ActorRole.CLIENT: {
        S.PENDING: {S.CANCELLED: _CLIENT_CANCEL},
        S.CONFIRMED: {S.CANCELLED: _CLIENT_CANCEL},
    },
    # Operators may correct anything, terminal states included, but always on record
    ActorRole.ADMIN: {
        current: {target: _ADMIN_OVERRIDE for target in S if target is not current}
        for current in S
    },
}


def lookup(role: ActorRole, current: AppointmentStatus, target: AppointmentStatus) -> Rule:
    """Return the rule for ``role`` moving ``current`` → ``target``."""
    return AUTHORIZATION_MATRIX.get(role, {}).get(current, {}).get(target, DENIED)


def allowed_targets(role: ActorRole, current: AppointmentStatus) -> set[AppointmentStatus]:
    """All statuses ``role`` may move an appointment in ``current`` to."""
    return {
        target
        for target, rule in AUTHORIZATION_MATRIX.get(role, {}).get(current, {}).items()
        if rule.allowed
    }


def is_lifecycle_edge(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Whether ``current`` → ``target`` exists in the ordinary lifecycle graph."""
    return target in LIFECYCLE_EDGES[current]

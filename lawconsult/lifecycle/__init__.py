"""Appointment lifecycle — authorization matrix, notice policy, errors.

The state machine and repositories live in ``lawconsult.lifecycle.machine`` and
``lawconsult.lifecycle.repository``; they are not re-exported here so the pure
rules can be imported without a database engine.
"""

from lawconsult.lifecycle.errors import (
    ConflictError,
    ErrorCode,
    ForbiddenError,
    InvalidOperationError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    ReasonRequiredError,
    TemporalViolationError,
    VersionConflictError,
)
from lawconsult.lifecycle.matrix import Permission, Rule, allowed_targets, lookup
from lawconsult.lifecycle.policy import client_may_cancel

__all__ = [
    "ErrorCode",
    "LifecycleError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidTransitionError",
    "ReasonRequiredError",
    "TemporalViolationError",
    "ConflictError",
    "InvalidOperationError",
    "VersionConflictError",
    "Permission",
    "Rule",
    "lookup",
    "allowed_targets",
    "client_may_cancel",
]

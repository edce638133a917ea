"""Lifecycle error taxonomy.

Every rejected request raises a LifecycleError subclass whose ``code`` is the
stable identifier surfaced to API callers. None of them is retried except
ConflictError, and that one only inside the state machine's bounded loop.
"""

from __future__ import annotations

import uuid
from enum import Enum


class ErrorCode(str, Enum):
    """Codes returned at the engine boundary."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    REASON_REQUIRED = "REASON_REQUIRED"
    TEMPORAL_VIOLATION = "TEMPORAL_VIOLATION"
    CONFLICT = "CONFLICT"
    INVALID_OPERATION = "INVALID_OPERATION"


class LifecycleError(Exception):
    """Base class for all business-rule rejections."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"<{type(self).__name__} code={self.code.value} message={self.message!r}>"


class NotFoundError(LifecycleError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, appointment_id: uuid.UUID | str) -> None:
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


class ForbiddenError(LifecycleError):
    code = ErrorCode.FORBIDDEN


class InvalidTransitionError(LifecycleError):
    code = ErrorCode.INVALID_TRANSITION


class ReasonRequiredError(LifecycleError):
    code = ErrorCode.REASON_REQUIRED


class TemporalViolationError(LifecycleError):
    code = ErrorCode.TEMPORAL_VIOLATION


class ConflictError(LifecycleError):
    code = ErrorCode.CONFLICT


class InvalidOperationError(LifecycleError):
    code = ErrorCode.INVALID_OPERATION


class VersionConflictError(Exception):
    """Raised by a repository when a commit's expected version is stale.

    Internal to the engine: the state machine turns it into a retry or a
    ConflictError, callers never see it.
    """

    def __init__(self, appointment_id: uuid.UUID, expected_version: int) -> None:
        super().__init__(f"Appointment {appointment_id} changed since version {expected_version}")
        self.appointment_id = appointment_id
        self.expected_version = expected_version

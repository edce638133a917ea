"""Pydantic schemas for the appointment aggregate and its HTTP payloads."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from lawconsult.models.enums import ActorRole, AppointmentStatus


@dataclass(frozen=True)
class Actor:
    """The role and identity attempting an action.

    ``id`` is the client or lawyer id for parties, and the operator's
    identifier for admins.
    """

    role: ActorRole
    id: str

    def is_party_to(self, appointment: AppointmentSnapshot) -> bool:
        if self.role is ActorRole.ADMIN:
            return True
        # Any spelling of the UUID (case, braces, no hyphens) names the same party
        try:
            actor_uuid = uuid.UUID(self.id)
        except ValueError:
            return False
        if self.role is ActorRole.CLIENT:
            return actor_uuid == appointment.client_id
        return actor_uuid == appointment.lawyer_id


class AppointmentSnapshot(BaseModel):
    """Immutable view of one appointment aggregate as read from the repository.

    The engine never mutates a snapshot; it derives a new one with
    ``model_copy(update=...)`` and hands it to the repository for commit.
    """

    id: uuid.UUID
    client_id: uuid.UUID
    lawyer_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus = AppointmentStatus.PENDING
    chat_enabled: bool = False

    reject_reason: str | None = None
    cancel_reason: str | None = None
    admin_reason: str | None = None

    description: str | None = None
    notes: str | None = None
    meeting_link: str | None = None

    is_lawyer_viewed: bool = False
    is_client_viewed: bool = False

    created_at: datetime
    updated_at: datetime

    model_config = {"frozen": True, "from_attributes": True}

    @model_validator(mode="after")
    def check_invariants(self) -> AppointmentSnapshot:
        """Reject rows that break the time order or the closed-chat rule."""
        if self.start_time >= self.end_time:
            msg = "start_time must be before end_time"
            raise ValueError(msg)
        if self.chat_enabled and self.status == AppointmentStatus.CANCELLED:
            msg = "chat cannot be enabled on a cancelled appointment"
            raise ValueError(msg)
        return self


# ── HTTP payloads ────────────────────────────────────────────────────


class TransitionRequest(BaseModel):
    """Body of POST /appointments/{id}/transitions."""

    status: AppointmentStatus
    reason: str | None = Field(default=None, max_length=2000)


class ChatToggleRequest(BaseModel):
    """Body of PUT /appointments/{id}/chat."""

    enabled: bool


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody

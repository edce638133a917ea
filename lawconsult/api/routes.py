"""Appointment lifecycle HTTP API.

Thin FastAPI layer over the state machine: every request is re-validated by
the engine regardless of which actions the UI offered.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from lawconsult.api.auth import get_actor
from lawconsult.lifecycle.errors import ErrorCode, ForbiddenError, LifecycleError
from lawconsult.lifecycle.machine import AppointmentStateMachine, state_machine
from lawconsult.models.enums import ActorRole, AppointmentStatus
from lawconsult.schemas.appointment import (
    Actor,
    AppointmentSnapshot,
    ChatToggleRequest,
    TransitionRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])

HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.REASON_REQUIRED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.TEMPORAL_VIOLATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_OPERATION: status.HTTP_409_CONFLICT,
}


def get_state_machine() -> AppointmentStateMachine:
    """FastAPI dependency returning the process-wide state machine."""
    return state_machine


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    """Render a LifecycleError as ``{"error": {"code", "message"}}``."""
    return JSONResponse(
        status_code=HTTP_STATUS[exc.code],
        content={"error": {"code": exc.code.value, "message": exc.message}},
    )


# ── Routes ───────────────────────────────────────────────────────────


@router.get("", response_model=list[AppointmentSnapshot])
async def list_appointments(
    status_filter: AppointmentStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    machine: AppointmentStateMachine = Depends(get_state_machine),
) -> list[AppointmentSnapshot]:
    """Admin listing, newest first."""
    if actor.role is not ActorRole.ADMIN:
        msg = "Only administrators can list all appointments"
        raise ForbiddenError(msg)
    return await machine.repository.list(status=status_filter, limit=limit)


@router.get("/{appointment_id}", response_model=AppointmentSnapshot)
async def get_appointment(
    appointment_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    machine: AppointmentStateMachine = Depends(get_state_machine),
) -> AppointmentSnapshot:
    """Show an appointment to one of its parties (or an admin) and mark it seen."""
    return await machine.mark_viewed(actor, appointment_id)


@router.get("/{appointment_id}/actions", response_model=list[AppointmentStatus])
async def get_allowed_actions(
    appointment_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    machine: AppointmentStateMachine = Depends(get_state_machine),
) -> list[AppointmentStatus]:
    """Statuses the caller could request right now, as a hint for rendering buttons."""
    appointment, _ = await machine.repository.load(appointment_id)
    if not actor.is_party_to(appointment):
        msg = f"{actor.role.value} {actor.id} is not a party to appointment {appointment_id}"
        raise ForbiddenError(msg)
    return machine.allowed_targets(actor, appointment)


@router.post("/{appointment_id}/transitions", response_model=AppointmentSnapshot)
async def transition_appointment(
    appointment_id: uuid.UUID,
    body: TransitionRequest,
    actor: Actor = Depends(get_actor),
    machine: AppointmentStateMachine = Depends(get_state_machine),
) -> AppointmentSnapshot:
    """Request a status change."""
    return await machine.apply(actor, appointment_id, body.status, body.reason)


@router.put("/{appointment_id}/chat", response_model=AppointmentSnapshot)
async def set_chat_enabled(
    appointment_id: uuid.UUID,
    body: ChatToggleRequest,
    actor: Actor = Depends(get_actor),
    machine: AppointmentStateMachine = Depends(get_state_machine),
) -> AppointmentSnapshot:
    """Open or close the appointment chat (lawyer only)."""
    return await machine.set_chat_enabled(actor, appointment_id, body.enabled)

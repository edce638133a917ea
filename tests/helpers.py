"""Builders shared by the lifecycle tests."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

from lawconsult.lifecycle.machine import AppointmentStateMachine
from lawconsult.lifecycle.repository import InMemoryAppointmentRepository
from lawconsult.models.enums import ActorRole, AppointmentStatus
from lawconsult.schemas.appointment import Actor, AppointmentSnapshot

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)
NOTICE = timedelta(hours=48)


def make_appointment(
    status: AppointmentStatus = AppointmentStatus.PENDING,
    start_in: timedelta = timedelta(hours=72),
    duration: timedelta = timedelta(hours=1),
    chat_enabled: bool = False,
    **overrides,
) -> AppointmentSnapshot:
    """Build an appointment starting ``start_in`` after NOW."""
    start = NOW + start_in
    fields = {
        "id": uuid.uuid4(),
        "client_id": uuid.uuid4(),
        "lawyer_id": uuid.uuid4(),
        "start_time": start,
        "end_time": start + duration,
        "status": status,
        "chat_enabled": chat_enabled,
        "created_at": NOW - timedelta(days=3),
        "updated_at": NOW - timedelta(days=3),
    }
    fields.update(overrides)
    return AppointmentSnapshot(**fields)


def client_of(appointment: AppointmentSnapshot) -> Actor:
    return Actor(role=ActorRole.CLIENT, id=str(appointment.client_id))


def lawyer_of(appointment: AppointmentSnapshot) -> Actor:
    return Actor(role=ActorRole.LAWYER, id=str(appointment.lawyer_id))


ADMIN = Actor(role=ActorRole.ADMIN, id="ops-1")


def make_machine(*appointments: AppointmentSnapshot, now: datetime = NOW) -> AppointmentStateMachine:
    """State machine over an in-memory repository seeded with ``appointments``."""
    return AppointmentStateMachine(
        InMemoryAppointmentRepository(appointments),
        clock=lambda: now,
        notice=NOTICE,
        conflict_retries=3,
    )

"""Appointment repository — the only code that reads or writes appointment rows.

Commits are compare-and-swap on ``version``: a commit lands only if nobody
else committed since the caller loaded. Two implementations share the
contract: PostgreSQL through SQLAlchemy, and an in-memory store for tests
and local tooling.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, runtime_checkable

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lawconsult.config import settings
from lawconsult.db.engine import async_session_factory
from lawconsult.lifecycle.errors import NotFoundError, VersionConflictError
from lawconsult.models.appointment import Appointment
from lawconsult.models.enums import AppointmentStatus
from lawconsult.schemas.appointment import AppointmentSnapshot

logger = logging.getLogger(__name__)

# Fields the engine is allowed to change after creation
MUTABLE_FIELDS: tuple[str, ...] = (
    "status",
    "chat_enabled",
    "reject_reason",
    "cancel_reason",
    "admin_reason",
    "is_lawyer_viewed",
    "is_client_viewed",
    "updated_at",
)


@runtime_checkable
class AppointmentRepository(Protocol):
    """Storage contract consumed by the state machine."""

    async def load(self, appointment_id: uuid.UUID) -> tuple[AppointmentSnapshot, int]:
        """Return the aggregate and its version; raise NotFoundError if absent."""
        ...

    async def commit(self, appointment: AppointmentSnapshot, expected_version: int) -> int:
        """Persist ``appointment`` if the stored version is still ``expected_version``.

        Returns the new version; raises VersionConflictError otherwise.
        """
        ...

    async def add(self, appointment: AppointmentSnapshot) -> AppointmentSnapshot:
        """Insert a freshly booked appointment (upstream booking flow)."""
        ...

    async def list(
        self,
        status: AppointmentStatus | None = None,
        limit: int = 50,
    ) -> list[AppointmentSnapshot]:
        """Newest-first listing, optionally filtered by status."""
        ...

    async def list_due(
        self,
        status: AppointmentStatus,
        cutoff: datetime,
        limit: int = 100,
    ) -> list[AppointmentSnapshot]:
        """Appointments in ``status`` whose start is at or before ``cutoff``."""
        ...


# ── PostgreSQL ───────────────────────────────────────────────────────


class SqlAlchemyAppointmentRepository:
    """Repository backed by the ``appointments`` table.

    The conditional ``UPDATE ... WHERE version = :expected`` takes the row lock
    in PostgreSQL, so concurrent commits on one row serialize and exactly one
    of them matches.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        read_retries: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._read_retries = read_retries if read_retries is not None else settings.db.read_retries

    async def load(self, appointment_id: uuid.UUID) -> tuple[AppointmentSnapshot, int]:
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self._session_factory() as db:
                    row = await db.get(Appointment, appointment_id)
                    if row is None:
                        raise NotFoundError(appointment_id)
                    return AppointmentSnapshot.model_validate(row), row.version
            except (OperationalError, DBAPIError) as exc:
                # Reads are idempotent: retry only connection-level faults
                if not _is_transient(exc) or attempt >= self._read_retries:
                    raise
                logger.warning(
                    "Transient DB error loading appointment %s (attempt %d/%d): %s",
                    appointment_id,
                    attempt,
                    self._read_retries,
                    exc,
                )

    async def commit(self, appointment: AppointmentSnapshot, expected_version: int) -> int:
        values = {field: getattr(appointment, field) for field in MUTABLE_FIELDS}
        values["status"] = appointment.status.value
        values["version"] = expected_version + 1

        stmt = (
            update(Appointment)
            .where(
                Appointment.id == appointment.id,
                Appointment.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        async with self._session_factory() as db:
            result = await db.execute(stmt)
            if result.rowcount != 1:  # type: ignore[attr-defined]
                await db.rollback()
                raise VersionConflictError(appointment.id, expected_version)
            await db.commit()

        logger.debug("Committed appointment %s at version %d", appointment.id, expected_version + 1)
        return expected_version + 1

    async def add(self, appointment: AppointmentSnapshot) -> AppointmentSnapshot:
        row = Appointment(
            id=appointment.id,
            client_id=appointment.client_id,
            lawyer_id=appointment.lawyer_id,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            status=appointment.status.value,
            chat_enabled=appointment.chat_enabled,
            description=appointment.description,
            notes=appointment.notes,
            meeting_link=appointment.meeting_link,
            is_lawyer_viewed=appointment.is_lawyer_viewed,
            is_client_viewed=appointment.is_client_viewed,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
            version=1,
        )
        async with self._session_factory() as db:
            db.add(row)
            await db.commit()
        return appointment

    async def list(
        self,
        status: AppointmentStatus | None = None,
        limit: int = 50,
    ) -> list[AppointmentSnapshot]:
        query = select(Appointment).order_by(Appointment.created_at.desc()).limit(limit)
        if status is not None:
            query = query.where(Appointment.status == status.value)
        async with self._session_factory() as db:
            result = await db.execute(query)
            return [AppointmentSnapshot.model_validate(row) for row in result.scalars().all()]

    async def list_due(
        self,
        status: AppointmentStatus,
        cutoff: datetime,
        limit: int = 100,
    ) -> list[AppointmentSnapshot]:
        query = (
            select(Appointment)
            .where(
                Appointment.status == status.value,
                Appointment.start_time <= cutoff,
            )
            .order_by(Appointment.start_time.asc())
            .limit(limit)
        )
        async with self._session_factory() as db:
            result = await db.execute(query)
            return [AppointmentSnapshot.model_validate(row) for row in result.scalars().all()]


def _is_transient(exc: DBAPIError) -> bool:
    return isinstance(exc, OperationalError) or exc.connection_invalidated


# ── In-memory ────────────────────────────────────────────────────────


class InMemoryAppointmentRepository:
    """Dict-backed repository with the same CAS semantics.

    Commits on one appointment serialize on a per-id lock; everything else
    proceeds concurrently.
    """

    def __init__(self, appointments: Iterable[AppointmentSnapshot] = ()) -> None:
        self._rows: dict[uuid.UUID, tuple[AppointmentSnapshot, int]] = {
            appointment.id: (appointment, 1) for appointment in appointments
        }
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}

    async def load(self, appointment_id: uuid.UUID) -> tuple[AppointmentSnapshot, int]:
        try:
            return self._rows[appointment_id]
        except KeyError:
            raise NotFoundError(appointment_id) from None

    async def commit(self, appointment: AppointmentSnapshot, expected_version: int) -> int:
        lock = self._locks.setdefault(appointment.id, asyncio.Lock())
        async with lock:
            if appointment.id not in self._rows:
                raise NotFoundError(appointment.id)
            _, current_version = self._rows[appointment.id]
            if current_version != expected_version:
                raise VersionConflictError(appointment.id, expected_version)
            self._rows[appointment.id] = (appointment, expected_version + 1)
        return expected_version + 1

    async def add(self, appointment: AppointmentSnapshot) -> AppointmentSnapshot:
        if appointment.id in self._rows:
            msg = f"Appointment {appointment.id} already exists"
            raise ValueError(msg)
        self._rows[appointment.id] = (appointment, 1)
        return appointment

    async def list(
        self,
        status: AppointmentStatus | None = None,
        limit: int = 50,
    ) -> list[AppointmentSnapshot]:
        rows = [snap for snap, _ in self._rows.values() if status is None or snap.status == status]
        rows.sort(key=lambda snap: snap.created_at, reverse=True)
        return rows[:limit]

    async def list_due(
        self,
        status: AppointmentStatus,
        cutoff: datetime,
        limit: int = 100,
    ) -> list[AppointmentSnapshot]:
        rows = [
            snap
            for snap, _ in self._rows.values()
            if snap.status == status and snap.start_time <= cutoff
        ]
        rows.sort(key=lambda snap: snap.start_time)
        return rows[:limit]


# Module-level singleton
appointment_repository = SqlAlchemyAppointmentRepository()

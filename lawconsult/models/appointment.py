"""Appointment model — a consultation booked by a client with a lawyer."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from lawconsult.models.base import Base, TimestampMixin
from lawconsult.models.enums import AppointmentStatus


class Appointment(TimestampMixin, Base):
    """Persistent row of the appointment aggregate.

    Only the lifecycle repository writes to this table; `version` is the
    optimistic-concurrency counter checked on every commit.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_appointments_time_order"),
        CheckConstraint(
            "NOT (chat_enabled AND status = 'cancelled')",
            name="ck_appointments_chat_closed_when_cancelled",
        ),
    )

    # Parties (owned by the external user/lawyer services)
    client_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    lawyer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)

    # Scheduling
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=AppointmentStatus.PENDING.value, nullable=False, index=True
    )

    # Chat channel
    chat_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Reason provenance, append-only
    reject_reason: Mapped[str | None] = mapped_column(Text)
    cancel_reason: Mapped[str | None] = mapped_column(Text)
    admin_reason: Mapped[str | None] = mapped_column(Text)

    # Free text set at booking
    description: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(String(1000))
    meeting_link: Mapped[str | None] = mapped_column(String(500))

    # Read-model flags
    is_lawyer_viewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_client_viewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} status={self.status} v={self.version} at={self.start_time}>"

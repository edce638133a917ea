"""SQLAlchemy ORM models for lawconsult.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from lawconsult.models.appointment import Appointment
from lawconsult.models.audit import AuditLog
from lawconsult.models.base import Base
from lawconsult.models.enums import TERMINAL_STATUSES, ActorRole, AppointmentStatus

__all__ = [
    # Base
    "Base",
    # Models
    "Appointment",
    "AuditLog",
    # Enums
    "ActorRole",
    "AppointmentStatus",
    "TERMINAL_STATUSES",
]

"""Audit log subscriber — persists every SystemEvent to the audit_log table.

Registered as a global subscriber at startup. Rejected transitions are
recorded too, so the log shows who tried what as well as what happened.

Failures are logged but never propagate to the event system.
"""

from __future__ import annotations

import logging

from lawconsult.db.engine import async_session_factory
from lawconsult.models.audit import AuditLog
from lawconsult.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


async def audit_on_event(event: SystemEvent) -> None:
    """Write a SystemEvent to the audit_log table."""
    try:
        async with async_session_factory() as db:
            audit = AuditLog(
                event_type=event.event_type.value,
                appointment_id=event.appointment_id,
                actor_id=event.actor_id,
                actor_role=event.actor_role,
                data=event.data,
            )
            db.add(audit)
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to persist audit event: %s (appointment=%s)",
            event.event_type.value,
            event.appointment_id,
        )

"""SystemEvent schema — the event type that flows through the lifecycle engine.

Every committed lifecycle action emits a SystemEvent. Subscribers (the audit
logger, notification senders) consume these events asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Lifecycle
    APPOINTMENT_STATUS_CHANGED = "appointment.status_changed"
    APPOINTMENT_TRANSITION_REJECTED = "appointment.transition_rejected"
    APPOINTMENT_CHAT_TOGGLED = "appointment.chat_toggled"
    APPOINTMENT_SWEPT = "appointment.swept"


class SystemEvent(BaseModel):
    """Core event emitted by the engine.

    Immutable once created. Consumed by:
    - audit_on_event → writes to audit_log table
    - any notification subscriber registered at startup
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context
    appointment_id: uuid.UUID | None = None
    actor_id: str | None = None
    actor_role: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}

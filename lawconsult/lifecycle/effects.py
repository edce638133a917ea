"""Side effects of lifecycle changes on derived appointment fields.

Each function returns the field updates to fold into the same commit as the
change that caused them; nothing here touches storage.
"""

from __future__ import annotations

from typing import Any

from lawconsult.models.enums import ActorRole, AppointmentStatus
from lawconsult.schemas.appointment import Actor, AppointmentSnapshot


def transition_effects(
    appointment: AppointmentSnapshot,
    target: AppointmentStatus,
    actor: Actor,
) -> dict[str, Any]:
    """Derived-field updates for moving ``appointment`` into ``target``."""
    updates: dict[str, Any] = {}

    # A cancelled appointment keeps its history readable but accepts no new messages
    if target == AppointmentStatus.CANCELLED and appointment.chat_enabled:
        updates["chat_enabled"] = False

    updates.update(_viewed_flags_after_change(actor))
    return updates


def message_effects(actor: Actor) -> dict[str, Any]:
    """A chat message is unread news for the other party."""
    if actor.role is ActorRole.LAWYER:
        return {"is_client_viewed": False}
    if actor.role is ActorRole.CLIENT:
        return {"is_lawyer_viewed": False}
    return {}


def viewed_effects(appointment: AppointmentSnapshot, actor: Actor) -> dict[str, Any]:
    """Flag updates for ``actor`` opening the appointment; empty when nothing changes."""
    if actor.role is ActorRole.LAWYER and not appointment.is_lawyer_viewed:
        return {"is_lawyer_viewed": True}
    if actor.role is ActorRole.CLIENT and not appointment.is_client_viewed:
        return {"is_client_viewed": True}
    return {}


def _viewed_flags_after_change(actor: Actor) -> dict[str, bool]:
    if actor.role is ActorRole.LAWYER:
        return {"is_lawyer_viewed": True, "is_client_viewed": False}
    if actor.role is ActorRole.CLIENT:
        return {"is_client_viewed": True, "is_lawyer_viewed": False}
    return {"is_lawyer_viewed": False, "is_client_viewed": False}

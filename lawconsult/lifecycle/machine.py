"""Appointment state machine — the single authority on status changes.

Every request runs the same cycle: read the clock once, load the aggregate,
validate against the authorization matrix and the cancellation notice rule,
fold in side effects, and commit with compare-and-swap. A lost CAS race is
retried only when the competing write left the status alone (a chat toggle
or a viewed flag); if the status moved, the caller's request was based on a
state that no longer exists and they get CONFLICT.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from lawconsult.config import settings
from lawconsult.events import emit
from lawconsult.lifecycle import effects, matrix
from lawconsult.lifecycle.errors import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    InvalidTransitionError,
    LifecycleError,
    ReasonRequiredError,
    TemporalViolationError,
    VersionConflictError,
)
from lawconsult.lifecycle.policy import client_may_cancel
from lawconsult.lifecycle.repository import AppointmentRepository, appointment_repository
from lawconsult.models.enums import ActorRole, AppointmentStatus
from lawconsult.schemas.appointment import Actor, AppointmentSnapshot
from lawconsult.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class AppointmentStateMachine:
    """Applies transitions and chat toggles to appointments in a repository."""

    def __init__(
        self,
        repository: AppointmentRepository,
        clock: Clock = utc_now,
        notice: timedelta | None = None,
        conflict_retries: int | None = None,
    ) -> None:
        self.repository = repository
        self.clock = clock
        if notice is None:
            notice = timedelta(hours=settings.lifecycle.cancellation_notice_hours)
        self._notice = notice
        if conflict_retries is None:
            conflict_retries = settings.lifecycle.conflict_retries
        if conflict_retries < 1:
            msg = "conflict_retries must be at least 1"
            raise ValueError(msg)
        self._conflict_retries = conflict_retries

    # ── Status transitions ───────────────────────────────────────────

    async def apply(
        self,
        actor: Actor,
        appointment_id: uuid.UUID,
        target: AppointmentStatus,
        reason: str | None = None,
    ) -> AppointmentSnapshot:
        """Move an appointment to ``target`` on behalf of ``actor``.

        Args:
            actor: Role and identity making the request.
            appointment_id: Aggregate to change.
            target: Requested status.
            reason: Free text; mandatory on reject, client cancel and every admin change.

        Returns:
            The committed appointment.

        Raises:
            NotFoundError, ForbiddenError, InvalidTransitionError,
            ReasonRequiredError, TemporalViolationError, ConflictError.
        """
        try:
            committed, previous = await self._apply(actor, appointment_id, target, reason)
        except LifecycleError as exc:
            logger.info(
                "Transition rejected: appointment=%s actor=%s/%s target=%s code=%s",
                appointment_id,
                actor.role.value,
                actor.id,
                target.value,
                exc.code.value,
            )
            await emit(SystemEvent(
                event_type=EventType.APPOINTMENT_TRANSITION_REJECTED,
                appointment_id=appointment_id,
                actor_id=actor.id,
                actor_role=actor.role.value,
                data={"to_status": target.value, "code": exc.code.value},
                source_module="lifecycle.machine",
            ))
            raise

        logger.info(
            "Appointment transition: %s --%s--> %s (appointment=%s)",
            previous.value,
            actor.role.value,
            committed.status.value,
            committed.id,
        )

        rule = matrix.lookup(actor.role, previous, target)
        await emit(SystemEvent(
            event_type=EventType.APPOINTMENT_STATUS_CHANGED,
            appointment_id=committed.id,
            actor_id=actor.id,
            actor_role=actor.role.value,
            data={
                "from_status": previous.value,
                "to_status": committed.status.value,
                "reason_field": rule.reason_field,
                "reason": reason if rule.requires_reason else None,
                "chat_enabled": committed.chat_enabled,
            },
            source_module="lifecycle.machine",
        ))
        return committed

    async def _apply(
        self,
        actor: Actor,
        appointment_id: uuid.UUID,
        target: AppointmentStatus,
        reason: str | None,
    ) -> tuple[AppointmentSnapshot, AppointmentStatus]:
        observed: AppointmentStatus | None = None

        for attempt in range(1, self._conflict_retries + 1):
            now = self.clock()
            appointment, version = await self.repository.load(appointment_id)

            if observed is None:
                observed = appointment.status
            elif appointment.status != observed:
                msg = (
                    f"Appointment moved from {observed.value} to "
                    f"{appointment.status.value} while the request was in flight"
                )
                raise ConflictError(msg)

            updated = self.build_transition(appointment, actor, target, reason, now)
            try:
                await self.repository.commit(updated, version)
            except VersionConflictError:
                logger.warning(
                    "CAS conflict on appointment %s (attempt %d/%d)",
                    appointment_id,
                    attempt,
                    self._conflict_retries,
                )
                continue
            return updated, appointment.status

        msg = f"Appointment {appointment_id} kept changing; re-read and retry"
        raise ConflictError(msg)

    def build_transition(
        self,
        appointment: AppointmentSnapshot,
        actor: Actor,
        target: AppointmentStatus,
        reason: str | None,
        now: datetime,
    ) -> AppointmentSnapshot:
        """Validate one transition and return the appointment it would produce.

        Pure: no I/O, no clock reads. Raises the matching LifecycleError when
        the request is not allowed.
        """
        current = appointment.status

        if not actor.is_party_to(appointment):
            msg = f"{actor.role.value} {actor.id} is not a party to appointment {appointment.id}"
            raise ForbiddenError(msg)

        if target == current:
            msg = f"Appointment is already {current.value}"
            raise InvalidTransitionError(msg)

        rule = matrix.lookup(actor.role, current, target)
        if not rule.allowed:
            if current.is_terminal and actor.role is not ActorRole.ADMIN:
                msg = f"Appointment is {current.value}; only an admin can change it"
                raise InvalidTransitionError(msg)
            if matrix.is_lifecycle_edge(current, target):
                msg = f"A {actor.role.value} cannot move an appointment from {current.value} to {target.value}"
                raise ForbiddenError(msg)
            msg = f"No transition from {current.value} to {target.value}"
            raise InvalidTransitionError(msg)

        updates: dict[str, Any] = {"status": target, "updated_at": now}

        if rule.requires_reason:
            if reason is None or not reason.strip():
                msg = f"A reason is required to move from {current.value} to {target.value}"
                raise ReasonRequiredError(msg)
            updates[rule.reason_field] = reason
        elif reason:
            logger.debug("Ignoring reason on %s -> %s: edge does not record one", current.value, target.value)

        if rule.notice_required and not client_may_cancel(appointment.start_time, now, self._notice):
            hours = int(self._notice.total_seconds() // 3600)
            msg = f"Appointments can only be cancelled at least {hours} hours before they start"
            raise TemporalViolationError(msg)

        updates.update(effects.transition_effects(appointment, target, actor))
        return appointment.model_copy(update=updates)

    # ── Chat channel ─────────────────────────────────────────────────

    async def set_chat_enabled(
        self,
        actor: Actor,
        appointment_id: uuid.UUID,
        enabled: bool,
    ) -> AppointmentSnapshot:
        """Open or close the chat channel. Only the appointment's lawyer may do this."""

        def build(appointment: AppointmentSnapshot, now: datetime) -> AppointmentSnapshot | None:
            if actor.role is not ActorRole.LAWYER or not actor.is_party_to(appointment):
                msg = "Only the appointment's lawyer can toggle the chat"
                raise ForbiddenError(msg)
            if enabled and appointment.status == AppointmentStatus.CANCELLED:
                msg = "Chat cannot be enabled on a cancelled appointment"
                raise InvalidOperationError(msg)
            if appointment.chat_enabled == enabled:
                return None
            return appointment.model_copy(update={"chat_enabled": enabled, "updated_at": now})

        appointment, changed = await self._mutate(appointment_id, build)
        if changed:
            logger.info("Chat %s for appointment %s", "enabled" if enabled else "disabled", appointment_id)
            await emit(SystemEvent(
                event_type=EventType.APPOINTMENT_CHAT_TOGGLED,
                appointment_id=appointment_id,
                actor_id=actor.id,
                actor_role=actor.role.value,
                data={"chat_enabled": enabled},
                source_module="lifecycle.machine",
            ))
        return appointment

    async def record_message(self, actor: Actor, appointment_id: uuid.UUID) -> AppointmentSnapshot:
        """Gate a new chat message and flag it as unread for the other party."""

        def build(appointment: AppointmentSnapshot, now: datetime) -> AppointmentSnapshot | None:
            if actor.role is ActorRole.ADMIN or not actor.is_party_to(appointment):
                msg = "Only the appointment's client and lawyer can write in its chat"
                raise ForbiddenError(msg)
            if not appointment.chat_enabled:
                msg = "Chat is read-only for this appointment"
                raise InvalidOperationError(msg)
            updates = {
                field: value
                for field, value in effects.message_effects(actor).items()
                if getattr(appointment, field) != value
            }
            return appointment.model_copy(update=updates) if updates else None

        appointment, _ = await self._mutate(appointment_id, build)
        return appointment

    # ── Read model ───────────────────────────────────────────────────

    async def mark_viewed(self, actor: Actor, appointment_id: uuid.UUID) -> AppointmentSnapshot:
        """Return the appointment for ``actor``, flagging it as seen by them."""

        def build(appointment: AppointmentSnapshot, now: datetime) -> AppointmentSnapshot | None:
            if not actor.is_party_to(appointment):
                msg = f"{actor.role.value} {actor.id} is not a party to appointment {appointment.id}"
                raise ForbiddenError(msg)
            updates = effects.viewed_effects(appointment, actor)
            return appointment.model_copy(update=updates) if updates else None

        appointment, _ = await self._mutate(appointment_id, build)
        return appointment

    async def _mutate(
        self,
        appointment_id: uuid.UUID,
        build: Callable[[AppointmentSnapshot, datetime], AppointmentSnapshot | None],
    ) -> tuple[AppointmentSnapshot, bool]:
        """Load/build/commit loop for changes that do not touch status.

        ``build`` returns None when there is nothing to write.
        """
        for attempt in range(1, self._conflict_retries + 1):
            now = self.clock()
            appointment, version = await self.repository.load(appointment_id)
            updated = build(appointment, now)
            if updated is None:
                return appointment, False
            try:
                await self.repository.commit(updated, version)
            except VersionConflictError:
                logger.warning(
                    "CAS conflict on appointment %s (attempt %d/%d)",
                    appointment_id,
                    attempt,
                    self._conflict_retries,
                )
                continue
            return updated, True

        msg = f"Appointment {appointment_id} kept changing; re-read and retry"
        raise ConflictError(msg)

    def allowed_targets(
        self,
        actor: Actor,
        appointment: AppointmentSnapshot,
        now: datetime | None = None,
    ) -> list[AppointmentStatus]:
        """Statuses ``actor`` could move ``appointment`` to right now.

        For UIs deciding which actions to offer; ``apply`` re-checks everything.
        """
        now = now or self.clock()
        targets = []
        for target in AppointmentStatus:
            try:
                self.build_transition(appointment, actor, target, "-", now)
            except LifecycleError:
                continue
            targets.append(target)
        return targets


# Module-level singleton
state_machine = AppointmentStateMachine(appointment_repository)

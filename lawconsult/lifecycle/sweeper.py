"""Stale-appointment sweeper.

Closes appointments that time has overtaken:
- pending appointments nobody confirmed by ``pending_grace_minutes`` after
  their start are cancelled;
- confirmed appointments whose start time has arrived are completed.

Both go through the state machine with the lawyer's authority, so the
normal side effects (chat closed on cancel, viewed flags) apply.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from lawconsult.config import settings
from lawconsult.events import emit
from lawconsult.lifecycle.errors import LifecycleError
from lawconsult.lifecycle.machine import AppointmentStateMachine, state_machine
from lawconsult.models.enums import ActorRole, AppointmentStatus
from lawconsult.schemas.appointment import Actor, AppointmentSnapshot
from lawconsult.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Counts from one sweep round."""

    cancelled: int = 0
    completed: int = 0
    skipped: list[str] = field(default_factory=list)


class LifecycleSweeper:
    """Periodically moves overdue appointments to their terminal status."""

    def __init__(
        self,
        machine: AppointmentStateMachine,
        grace: timedelta | None = None,
        interval_seconds: int | None = None,
    ) -> None:
        self.machine = machine
        if grace is None:
            grace = timedelta(minutes=settings.lifecycle.pending_grace_minutes)
        self._grace = grace
        if interval_seconds is None:
            interval_seconds = settings.lifecycle.sweep_interval_seconds
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    async def sweep(self) -> SweepResult:
        """Run one round and return what changed."""
        result = SweepResult()
        now = self.machine.clock()
        repository = self.machine.repository

        stale_pending = await repository.list_due(AppointmentStatus.PENDING, now - self._grace)
        for appointment in stale_pending:
            if await self._close(appointment, AppointmentStatus.CANCELLED, result):
                result.cancelled += 1

        started = await repository.list_due(AppointmentStatus.CONFIRMED, now)
        for appointment in started:
            if await self._close(appointment, AppointmentStatus.COMPLETED, result):
                result.completed += 1

        if result.cancelled or result.completed or result.skipped:
            logger.info(
                "Sweep: cancelled=%d completed=%d skipped=%d",
                result.cancelled,
                result.completed,
                len(result.skipped),
            )
        return result

    async def _close(
        self,
        appointment: AppointmentSnapshot,
        target: AppointmentStatus,
        result: SweepResult,
    ) -> bool:
        actor = Actor(role=ActorRole.LAWYER, id=str(appointment.lawyer_id))
        try:
            await self.machine.apply(actor, appointment.id, target)
        except LifecycleError as exc:
            # Someone else moved it first; the next round sees the new state
            logger.info("Sweep skipped appointment %s: %s", appointment.id, exc.code.value)
            result.skipped.append(str(appointment.id))
            return False

        await emit(SystemEvent(
            event_type=EventType.APPOINTMENT_SWEPT,
            appointment_id=appointment.id,
            actor_id=actor.id,
            actor_role=actor.role.value,
            data={"from_status": appointment.status.value, "to_status": target.value, "trigger": "sweeper"},
            source_module="lifecycle.sweeper",
        ))
        return True

    # ── Background loop ──────────────────────────────────────────────

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
            logger.info("Lifecycle sweeper started (every %ds)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Lifecycle sweeper stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Lifecycle sweep failed")
            await asyncio.sleep(self._interval)


# Module-level singleton
lifecycle_sweeper = LifecycleSweeper(state_machine)

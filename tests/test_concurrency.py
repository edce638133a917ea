"""Concurrent conflicting requests on one appointment.

A lawyer confirm and a client cancel race on the same pending appointment.
Both load the same version before either commits, so exactly one commit can
land; the other must come back as CONFLICT and leave no trace.
"""

from __future__ import annotations

import asyncio

import pytest

from lawconsult.lifecycle.errors import ConflictError
from lawconsult.lifecycle.machine import AppointmentStateMachine
from lawconsult.lifecycle.repository import InMemoryAppointmentRepository
from lawconsult.models.enums import AppointmentStatus
from tests.helpers import NOTICE, NOW, client_of, lawyer_of, make_appointment

S = AppointmentStatus


class LockstepRepository(InMemoryAppointmentRepository):
    """Holds the first ``parties`` loads until all of them have read."""

    def __init__(self, appointments, parties: int = 2):
        super().__init__(appointments)
        self._parties = parties
        self._arrived = 0
        self._all_loaded = asyncio.Event()

    async def load(self, appointment_id):
        snapshot = await super().load(appointment_id)
        if self._arrived < self._parties:
            self._arrived += 1
            if self._arrived == self._parties:
                self._all_loaded.set()
            await self._all_loaded.wait()
        return snapshot


async def _race(appt):
    repo = LockstepRepository([appt])
    machine = AppointmentStateMachine(repo, clock=lambda: NOW, notice=NOTICE, conflict_retries=3)
    results = await asyncio.gather(
        machine.apply(lawyer_of(appt), appt.id, S.CONFIRMED),
        machine.apply(client_of(appt), appt.id, S.CANCELLED, "found another lawyer"),
        return_exceptions=True,
    )
    return repo, results


class TestConcurrentTransitions:
    @pytest.mark.asyncio()
    async def test_exactly_one_wins(self):
        appt = make_appointment(chat_enabled=True)

        repo, results = await _race(appt)

        wins = [r for r in results if not isinstance(r, BaseException)]
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(wins) == 1
        assert len(conflicts) == 1

        stored, version = await repo.load(appt.id)
        assert version == 2
        assert stored == wins[0]

    @pytest.mark.asyncio()
    async def test_stored_state_is_one_outcome_only(self):
        appt = make_appointment(chat_enabled=True)

        repo, _ = await _race(appt)

        stored, _ = await repo.load(appt.id)
        if stored.status == S.CONFIRMED:
            assert stored.cancel_reason is None
            assert stored.chat_enabled is True
        else:
            assert stored.status == S.CANCELLED
            assert stored.cancel_reason == "found another lawyer"
            assert stored.chat_enabled is False

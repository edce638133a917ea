"""Tests for the appointment repositories.

The in-memory store is exercised directly; the SQLAlchemy repository runs
against a mocked session factory so no database is needed.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError, OperationalError

from lawconsult.lifecycle.errors import NotFoundError, VersionConflictError
from lawconsult.lifecycle.repository import (
    AppointmentRepository,
    InMemoryAppointmentRepository,
    SqlAlchemyAppointmentRepository,
)
from lawconsult.models.enums import AppointmentStatus
from tests.helpers import NOW, make_appointment

S = AppointmentStatus


def _mock_factory(db: MagicMock) -> MagicMock:
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=db)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


def _row(appointment, version: int = 1) -> SimpleNamespace:
    fields = appointment.model_dump()
    fields["status"] = appointment.status.value
    return SimpleNamespace(**fields, version=version)


# ── In-memory ────────────────────────────────────────────────────────


class TestInMemoryRepository:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryAppointmentRepository(), AppointmentRepository)
        assert isinstance(SqlAlchemyAppointmentRepository(MagicMock()), AppointmentRepository)

    @pytest.mark.asyncio()
    async def test_load_seeded_at_version_one(self):
        appt = make_appointment()
        repo = InMemoryAppointmentRepository([appt])

        assert await repo.load(appt.id) == (appt, 1)

    @pytest.mark.asyncio()
    async def test_load_missing(self):
        repo = InMemoryAppointmentRepository()

        with pytest.raises(NotFoundError):
            await repo.load(uuid.uuid4())

    @pytest.mark.asyncio()
    async def test_commit_bumps_version(self):
        appt = make_appointment()
        repo = InMemoryAppointmentRepository([appt])
        updated = appt.model_copy(update={"status": S.CONFIRMED})

        assert await repo.commit(updated, 1) == 2
        assert await repo.load(appt.id) == (updated, 2)

    @pytest.mark.asyncio()
    async def test_stale_commit_rejected(self):
        appt = make_appointment()
        repo = InMemoryAppointmentRepository([appt])
        await repo.commit(appt.model_copy(update={"chat_enabled": True}), 1)

        with pytest.raises(VersionConflictError) as exc_info:
            await repo.commit(appt.model_copy(update={"status": S.CONFIRMED}), 1)

        assert exc_info.value.expected_version == 1
        stored, version = await repo.load(appt.id)
        assert stored.status == S.PENDING
        assert version == 2

    @pytest.mark.asyncio()
    async def test_add_rejects_duplicate(self):
        appt = make_appointment()
        repo = InMemoryAppointmentRepository()
        await repo.add(appt)

        with pytest.raises(ValueError, match="already exists"):
            await repo.add(appt)

    @pytest.mark.asyncio()
    async def test_list_newest_first_with_filter(self):
        older = make_appointment(created_at=NOW - timedelta(days=5))
        newer = make_appointment(created_at=NOW - timedelta(days=1))
        done = make_appointment(status=S.COMPLETED)
        repo = InMemoryAppointmentRepository([older, newer, done])

        pending = await repo.list(status=S.PENDING)
        assert [a.id for a in pending] == [newer.id, older.id]
        assert len(await repo.list(limit=1)) == 1

    @pytest.mark.asyncio()
    async def test_list_due(self):
        past = make_appointment(start_in=-timedelta(hours=2))
        soon = make_appointment(start_in=timedelta(hours=1))
        confirmed_past = make_appointment(status=S.CONFIRMED, start_in=-timedelta(hours=3))
        repo = InMemoryAppointmentRepository([soon, past, confirmed_past])

        due = await repo.list_due(S.PENDING, NOW)

        assert [a.id for a in due] == [past.id]

    @pytest.mark.asyncio()
    async def test_list_due_includes_cutoff(self):
        on_cutoff = make_appointment(start_in=timedelta(0))
        repo = InMemoryAppointmentRepository([on_cutoff])

        assert [a.id for a in await repo.list_due(S.PENDING, NOW)] == [on_cutoff.id]


# ── SQLAlchemy ───────────────────────────────────────────────────────


class TestSqlAlchemyRepository:
    @pytest.mark.asyncio()
    async def test_load_returns_snapshot_and_version(self):
        appt = make_appointment(status=S.CONFIRMED)
        db = MagicMock()
        db.get = AsyncMock(return_value=_row(appt, version=4))
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db), read_retries=3)

        snapshot, version = await repo.load(appt.id)

        assert snapshot == appt
        assert snapshot.status is S.CONFIRMED
        assert version == 4

    @pytest.mark.asyncio()
    async def test_load_missing(self):
        db = MagicMock()
        db.get = AsyncMock(return_value=None)
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db), read_retries=3)

        with pytest.raises(NotFoundError):
            await repo.load(uuid.uuid4())

        db.get.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_load_retries_transient_errors(self):
        appt = make_appointment()
        db = MagicMock()
        db.get = AsyncMock(side_effect=[
            OperationalError("SELECT", {}, Exception("connection reset")),
            _row(appt),
        ])
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db), read_retries=3)

        snapshot, _ = await repo.load(appt.id)

        assert snapshot == appt
        assert db.get.await_count == 2

    @pytest.mark.asyncio()
    async def test_load_gives_up_after_budget(self):
        db = MagicMock()
        db.get = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db), read_retries=2)

        with pytest.raises(OperationalError):
            await repo.load(uuid.uuid4())

        assert db.get.await_count == 2

    @pytest.mark.asyncio()
    async def test_load_does_not_retry_other_db_errors(self):
        db = MagicMock()
        db.get = AsyncMock(side_effect=DBAPIError("SELECT", {}, Exception("syntax")))
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db), read_retries=3)

        with pytest.raises(DBAPIError):
            await repo.load(uuid.uuid4())

        db.get.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_commit_success(self):
        appt = make_appointment()
        db = MagicMock()
        db.execute = AsyncMock(return_value=SimpleNamespace(rowcount=1))
        db.commit = AsyncMock()
        db.rollback = AsyncMock()
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db))

        new_version = await repo.commit(appt.model_copy(update={"status": S.CONFIRMED}), 3)

        assert new_version == 4
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_commit_conflict_when_no_row_matches(self):
        appt = make_appointment()
        db = MagicMock()
        db.execute = AsyncMock(return_value=SimpleNamespace(rowcount=0))
        db.commit = AsyncMock()
        db.rollback = AsyncMock()
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db))

        with pytest.raises(VersionConflictError):
            await repo.commit(appt, 1)

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_commit_statement_guards_on_version(self):
        appt = make_appointment()
        db = MagicMock()
        db.execute = AsyncMock(return_value=SimpleNamespace(rowcount=1))
        db.commit = AsyncMock()
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db))

        await repo.commit(appt, 7)

        stmt = db.execute.call_args.args[0]
        params = stmt.compile().params
        assert 7 in params.values()
        assert params["version"] == 8
        assert params["status"] == "pending"

    @pytest.mark.asyncio()
    async def test_list_due_cutoff_is_inclusive(self):
        db = MagicMock()
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        db.execute = AsyncMock(return_value=result)
        repo = SqlAlchemyAppointmentRepository(_mock_factory(db))

        assert await repo.list_due(S.CONFIRMED, NOW) == []

        sql = str(db.execute.call_args.args[0])
        assert "appointments.start_time <=" in sql

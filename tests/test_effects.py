"""Tests for derived-field side effects."""

from __future__ import annotations

from lawconsult.lifecycle.effects import message_effects, transition_effects, viewed_effects
from lawconsult.models.enums import AppointmentStatus
from tests.helpers import ADMIN, client_of, lawyer_of, make_appointment

S = AppointmentStatus


class TestTransitionEffects:
    def test_cancel_closes_open_chat(self):
        appt = make_appointment(status=S.CONFIRMED, chat_enabled=True)

        updates = transition_effects(appt, S.CANCELLED, lawyer_of(appt))

        assert updates["chat_enabled"] is False

    def test_cancel_with_closed_chat_leaves_it(self):
        appt = make_appointment(status=S.CONFIRMED)

        updates = transition_effects(appt, S.CANCELLED, lawyer_of(appt))

        assert "chat_enabled" not in updates

    def test_other_targets_leave_chat(self):
        appt = make_appointment(status=S.CONFIRMED, chat_enabled=True)

        updates = transition_effects(appt, S.COMPLETED, lawyer_of(appt))

        assert "chat_enabled" not in updates

    def test_viewed_flags_follow_actor(self):
        appt = make_appointment()

        assert transition_effects(appt, S.CONFIRMED, lawyer_of(appt)) == {
            "is_lawyer_viewed": True,
            "is_client_viewed": False,
        }
        assert transition_effects(appt, S.CANCELLED, client_of(appt)) == {
            "is_client_viewed": True,
            "is_lawyer_viewed": False,
        }
        assert transition_effects(appt, S.CONFIRMED, ADMIN) == {
            "is_lawyer_viewed": False,
            "is_client_viewed": False,
        }


class TestMessageAndViewEffects:
    def test_message_flags_counterparty(self):
        appt = make_appointment()

        assert message_effects(client_of(appt)) == {"is_lawyer_viewed": False}
        assert message_effects(lawyer_of(appt)) == {"is_client_viewed": False}
        assert message_effects(ADMIN) == {}

    def test_view_only_when_unseen(self):
        unseen = make_appointment()
        seen = make_appointment(is_lawyer_viewed=True)

        assert viewed_effects(unseen, lawyer_of(unseen)) == {"is_lawyer_viewed": True}
        assert viewed_effects(seen, lawyer_of(seen)) == {}
        assert viewed_effects(unseen, ADMIN) == {}

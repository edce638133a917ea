"""Minimum-notice rule for client cancellations.

A client may cancel only while the appointment is still at least the notice
window away. Lawyers and admins are never subject to it.
"""

from __future__ import annotations

from datetime import datetime, timedelta

DEFAULT_NOTICE = timedelta(hours=48)


def cancellation_deadline(start_time: datetime, notice: timedelta = DEFAULT_NOTICE) -> datetime:
    """Last instant at which a client may still cancel."""
    return start_time - notice


def client_may_cancel(
    start_time: datetime,
    now: datetime,
    notice: timedelta = DEFAULT_NOTICE,
) -> bool:
    """True iff ``start_time >= now + notice``.

    Both datetimes must be timezone-aware; ``now`` is read once by the caller
    so the decision and the commit share the same instant.
    """
    if start_time.tzinfo is None or now.tzinfo is None:
        msg = "start_time and now must be timezone-aware"
        raise ValueError(msg)
    return start_time >= now + notice

"""Shared fixtures for the lifecycle tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def mock_emit():
    """Keep lifecycle events off the real bus; expose the mocks for assertions."""
    with (
        patch("lawconsult.lifecycle.machine.emit", new_callable=AsyncMock) as machine_emit,
        patch("lawconsult.lifecycle.sweeper.emit", new_callable=AsyncMock) as sweeper_emit,
    ):
        yield {"machine": machine_emit, "sweeper": sweeper_emit}

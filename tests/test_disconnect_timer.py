"""
Unit Tests for DisconnectTimer

Tests for:
- Firing after the configured delay
- Replacement: re-arming cancels the previous timer
- Cancellation
- Callback errors are contained
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from discord_jukebox.application.services.disconnect_timer import (
    IDLE_DISCONNECT_SECONDS,
    DisconnectTimer,
)


class TestDisconnectTimer:
    """Unit tests for the single-slot idle timer."""

    def test_default_idle_window(self):
        """Should default to a 15 minute idle window."""
        assert DisconnectTimer().delay == IDLE_DISCONNECT_SECONDS == 900

    @pytest.mark.asyncio
    async def test_fires_after_delay(self):
        """Should run the callback once the delay elapses."""
        timer = DisconnectTimer(0.01)
        callback = AsyncMock()

        timer.arm(callback)
        assert timer.armed is True
        await asyncio.sleep(0.05)

        callback.assert_awaited_once()
        assert timer.armed is False

    @pytest.mark.asyncio
    async def test_rearm_replaces_previous_timer(self):
        """Should run only the second callback, timed from the second arming."""
        timer = DisconnectTimer(0.1)
        first = AsyncMock()
        second = AsyncMock()

        timer.arm(first)
        await asyncio.sleep(0.06)
        timer.arm(second)
        await asyncio.sleep(0.06)

        # The first deadline has passed but it was replaced.
        first.assert_not_awaited()
        second.assert_not_awaited()

        await asyncio.sleep(0.1)
        first.assert_not_awaited()
        second.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancel_prevents_firing(self):
        """Should never run a cancelled callback."""
        timer = DisconnectTimer(0.01)
        callback = AsyncMock()

        timer.arm(callback)
        assert timer.cancel() is True
        await asyncio.sleep(0.03)

        callback.assert_not_awaited()
        assert timer.armed is False

    def test_cancel_when_idle(self):
        """Should report that nothing was pending."""
        assert DisconnectTimer().cancel() is False

    @pytest.mark.asyncio
    async def test_explicit_delay_overrides_default(self):
        """Should honor a per-arm delay."""
        timer = DisconnectTimer(60)
        callback = AsyncMock()

        timer.arm(callback, delay=0.01)
        await asyncio.sleep(0.05)

        callback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_callback_error_is_logged(self, caplog):
        """Should log and swallow callback failures."""
        timer = DisconnectTimer(0.01)
        callback = AsyncMock(side_effect=RuntimeError("voice gone"))

        timer.arm(callback)
        await asyncio.sleep(0.05)

        callback.assert_awaited_once()
        assert "Error in idle disconnect callback" in caplog.text

    @pytest.mark.asyncio
    async def test_arm_from_inside_callback(self):
        """Should let a firing callback arm a fresh timer."""
        timer = DisconnectTimer(0.01)
        second = AsyncMock()

        async def first() -> None:
            timer.arm(second)

        timer.arm(first)
        await asyncio.sleep(0.06)

        second.assert_awaited_once()

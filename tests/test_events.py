"""
Unit tests for the gateway cog wiring.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from bot.events import PresenceEvents


@pytest.mark.unit
@pytest.mark.asyncio
async def test_voice_update_is_forwarded_to_machine():
    bot = MagicMock()
    bot.presence.handle = AsyncMock()
    cog = PresenceEvents(bot)
    member, before, after = MagicMock(), MagicMock(), MagicMock()

    await cog.on_voice_state_update(member, before, after)

    bot.presence.handle.assert_awaited_once_with(member, before, after)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_handler_errors_do_not_escape():
    bot = MagicMock()
    bot.presence.handle = AsyncMock(side_effect=RuntimeError("boom"))
    cog = PresenceEvents(bot)

    await cog.on_voice_state_update(MagicMock(), MagicMock(), MagicMock())

    bot.presence.handle.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ready_cleans_up_stale_voice_sessions():
    stale = MagicMock()
    stale.disconnect = AsyncMock()
    bot = MagicMock()
    bot.voice_clients = [stale]
    cog = PresenceEvents(bot)

    await cog.on_ready()

    stale.disconnect.assert_awaited_once_with(force=True)

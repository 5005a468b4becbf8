"""
bot/events.py
Discord event handlers: on_ready and on_voice_state_update.
Voice state updates are handed to the presence state machine.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

if TYPE_CHECKING:
    from follower.machine import PresenceStateMachine

log = logging.getLogger("follower.events")


class PresenceEvents(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    # ────────────────────────────────────────
    # on_ready
    # ────────────────────────────────────────

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        log.info("Ready! Logged in as %s (ID: %s)", self.bot.user, self.bot.user.id)

        # Sessions left over from a previous run are not tracked by us.
        for vc in self.bot.voice_clients:
            try:
                await vc.disconnect(force=True)
                log.info("Cleaned up zombie voice session in %s", vc.channel)
            except Exception as e:
                log.warning("Failed to clean up voice session: %s", e)

    # ────────────────────────────────────────
    # Voice state updates
    # ────────────────────────────────────────

    @commands.Cog.listener()
    async def on_voice_state_update(self, member: discord.Member,
                                    before: discord.VoiceState,
                                    after: discord.VoiceState) -> None:
        machine: PresenceStateMachine = self.bot.presence
        try:
            await machine.handle(member, before, after)
        except Exception as e:
            log.exception("Error handling voice update for %s: %s", member, e)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(PresenceEvents(bot))

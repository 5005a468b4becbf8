"""
follower/selector.py
Scans a guild's voice channels for the first one with members in it.
"""

from __future__ import annotations
import logging
from typing import Optional

import discord

from .membership import is_channel_empty
from .scheduler import JoinScheduler
from .state import PresenceSession, PresenceState

log = logging.getLogger("follower.selector")


class ChannelSelector:
    def __init__(self, client: discord.Client, session: PresenceSession,
                 scheduler: JoinScheduler, agent_id: Optional[int] = None):
        self.client = client
        self.session = session
        self.scheduler = scheduler
        self.agent_id = agent_id

    async def find_new_channel(self, guild_id: int,
                               adapter: Optional[discord.Guild]) -> Optional[int]:
        """
        Target the first occupied voice channel of the guild, in the order the
        guild lists them. Lookups stop at the first hit.

        With an adapter the join timer is armed (unless one is already
        running); without one only the target is updated, so a pending timer
        simply joins the new target when it fires. When nothing qualifies the
        target is cleared and any pending timer is cancelled.
        """
        self.session.enter(PresenceState.SCANNING)
        found: Optional[int] = None

        guild = self.client.get_guild(guild_id)
        if guild is not None:
            for channel in guild.voice_channels:
                if await is_channel_empty(self.client, channel.id, self.agent_id) is False:
                    found = channel.id
                    break

        if found is None:
            log.info("Couldn't find anywhere else to go.")
            self.scheduler.cancel()
            self.session.target_channel_id = None
            self.session.settle()
            return None

        self.session.target_channel_id = found
        log.info("%s has targetable members.", found)
        if adapter is not None and not self.scheduler.pending:
            self.scheduler.start_join_timer(guild_id, adapter)
        else:
            self.session.settle()
        return found

"""
follower/machine.py
Reacts to voice state updates and decides where the agent should be heading.

Rules, applied in order for every update that moves a member between channels:
  1. The agent itself was disconnected -> stop its playback.
  2. The agent sits alone in its channel -> leave.
  3. Someone else moved and the agent has no connection in this guild ->
     follow them (retarget or arm the join timer).
  4. Otherwise, somebody left voice entirely and no timer is running ->
     scan the guild for another populated channel.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Optional

import discord

from .config import FollowerConfig
from .membership import channel_member_count, is_channel_empty
from .scheduler import JoinScheduler
from .selector import ChannelSelector
from .state import PresenceSession, PresenceState

if TYPE_CHECKING:
    from bot.voice import VoiceManager

log = logging.getLogger("follower.machine")


class PresenceStateMachine:
    def __init__(self, client: discord.Client, session: PresenceSession,
                 config: FollowerConfig, voice: "VoiceManager"):
        self.client = client
        self.session = session
        self.config = config
        self.voice = voice
        self.scheduler = JoinScheduler(session, config, voice)
        self.selector = ChannelSelector(client, session, self.scheduler, config.client_id)

    def is_agent(self, member: discord.abc.Snowflake) -> bool:
        return member.id == self.config.client_id

    async def handle(self, member: discord.Member, before: discord.VoiceState,
                     after: discord.VoiceState) -> None:
        old_channel = before.channel.id if before.channel else None
        new_channel = after.channel.id if after.channel else None
        if old_channel == new_channel:
            # mute / deafen / stream toggles
            return

        guild = member.guild
        is_agent = self.is_agent(member)
        log.debug("Voice update: member=%s %s -> %s (guild %s)",
                  member.id, old_channel, new_channel, guild.id)

        if is_agent and new_channel is None:
            log.info("Agent disconnected from voice in guild %s; stopping audio.", guild.id)
            self.voice.stop(guild.id)

        connection = self.voice.connection_for(guild.id)
        if connection is not None:
            await self._leave_if_alone(guild.id)

        if not is_agent and connection is None:
            await self._follow(guild, new_channel)
        elif not self.scheduler.pending and new_channel is None:
            await self.selector.find_new_channel(guild.id, guild)

    async def _leave_if_alone(self, guild_id: int) -> None:
        channel_id = self.session.occupied_channel_id
        if channel_id is None or self.session.occupied_guild_id != guild_id:
            return
        if await channel_member_count(self.client, channel_id) != 1:
            return
        log.info("Alone in %s; leaving.", channel_id)
        self.session.enter(PresenceState.SOLO_DEPARTING)
        await self.voice.destroy(guild_id)
        self.session.settle()

    async def _follow(self, guild: discord.Guild, new_channel: Optional[int]) -> None:
        target = self.session.target_channel_id
        agent_id = self.config.client_id
        if target is not None and await is_channel_empty(self.client, target, agent_id) is True:
            log.info("%s now empty.", target)
            if new_channel is not None:
                # adopts whatever is left of the running timer
                self.session.target_channel_id = new_channel
                log.info("Joining %s instead.", new_channel)
            else:
                await self.selector.find_new_channel(guild.id, None)

        if new_channel is not None and not self.scheduler.pending:
            self.session.target_channel_id = new_channel
            self.scheduler.start_join_timer(guild.id, guild)

"""
follower/membership.py
Answers "who is in this voice channel?" against the Discord client.
A None result means the question does not apply (missing or non-voice channel)
and the caller should not act on it.
"""

from __future__ import annotations
import logging
from typing import Optional

import discord

log = logging.getLogger("follower.membership")


async def resolve_voice_channel(client: discord.Client,
                                channel_id: int) -> Optional[discord.VoiceChannel]:
    """Cache first, then the REST API. NotFound is treated as 'no such channel'."""
    channel = client.get_channel(channel_id)
    if channel is None:
        try:
            channel = await client.fetch_channel(channel_id)
        except discord.NotFound:
            log.debug("Channel %s no longer exists.", channel_id)
            return None
    if not isinstance(channel, discord.VoiceChannel):
        log.debug("Channel %s is not a voice channel.", channel_id)
        return None
    return channel


async def channel_member_count(client: discord.Client, channel_id: int,
                               ignore_id: Optional[int] = None) -> Optional[int]:
    """Number of members in the channel, not counting `ignore_id`."""
    channel = await resolve_voice_channel(client, channel_id)
    if channel is None:
        return None
    return sum(1 for m in channel.members if m.id != ignore_id)


async def is_channel_empty(client: discord.Client, channel_id: int,
                           ignore_id: Optional[int] = None) -> Optional[bool]:
    """
    True when nobody but `ignore_id` (the agent) is in the channel.
    None when the channel cannot be checked.
    """
    count = await channel_member_count(client, channel_id, ignore_id)
    if count is None:
        return None
    return count == 0

"""
bot/voice.py
Voice connections and audio playback for the follower.
Each connection plays the configured resource once; when the player goes
idle the connection for that guild is torn down.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Optional

import discord
from discord.ext import commands

from follower.config import FollowerConfig
from follower.state import PresenceSession

log = logging.getLogger("follower.voice")


class VoiceManager:
    """Manages the bot's voice connections and the guilds playing audio."""

    def __init__(self, bot: commands.Bot, session: PresenceSession, config: FollowerConfig):
        self.bot     = bot
        self.session = session
        self.config  = config

    # ──────────────────────────────────────────
    # Connection management
    # ──────────────────────────────────────────

    def connection_for(self, guild_id: int) -> Optional[discord.VoiceClient]:
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            return None
        return guild.voice_client

    async def join(self, guild: discord.Guild, channel_id: int) -> Optional[discord.VoiceClient]:
        """Connect to a voice channel. Failures are logged, never retried."""
        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.VoiceChannel):
            log.error("Channel %s is not a voice channel.", channel_id)
            return None

        try:
            vc = await channel.connect()
        except discord.errors.ConnectionClosed as e:
            log.error("Voice connection closed (%s) while joining %s.", e.code, channel.name)
            return None
        except Exception as e:
            log.error("Failed to connect to voice channel %s: %s", channel.name, e)
            return None

        log.info("Connected to voice channel: %s", channel.name)
        return vc

    async def destroy(self, guild_id: int) -> None:
        """Leave the guild's voice channel, if connected, and forget the occupied channel."""
        vc = self.connection_for(guild_id)
        if vc is not None:
            try:
                await vc.disconnect(force=True)
                log.info("Disconnected from voice in guild %s.", guild_id)
            except Exception as e:
                log.warning("Error while disconnecting in guild %s: %s", guild_id, e)
        self.session.clear_occupied(guild_id)

    async def disconnect_all(self) -> None:
        for vc in list(self.bot.voice_clients):
            try:
                await vc.disconnect(force=True)
            except Exception as e:
                log.warning("Failed to clean up voice: %s", e)
        self.session.clear_occupied()
        self.session.active_guilds.clear()

    # ──────────────────────────────────────────
    # Audio playback
    # ──────────────────────────────────────────

    def play(self, vc: discord.VoiceClient, guild_id: int) -> None:
        """Start the resource on a fresh connection. Returns immediately."""
        loop = asyncio.get_running_loop()

        def after_play(error: Optional[Exception]) -> None:
            # runs on the player thread
            if error:
                log.error("Playback error in guild %s: %s", guild_id, error)
            future = asyncio.run_coroutine_threadsafe(self.on_idle(guild_id), loop)
            future.add_done_callback(after_idle)

        def after_idle(future) -> None:
            if future.cancelled():
                return
            error = future.exception()
            if error:
                log.error("Teardown after playback failed in guild %s: %s", guild_id, error)

        source = discord.FFmpegPCMAudio(
            str(self.config.resource_path),
            executable=self.config.ffmpeg_path,
            options="-vn",
        )
        vc.play(source, after=after_play)
        self.on_playing(guild_id)

    def stop(self, guild_id: int) -> None:
        vc = self.connection_for(guild_id)
        if vc is not None and vc.is_playing():
            vc.stop()

    # ──────────────────────────────────────────
    # Player lifecycle
    # ──────────────────────────────────────────

    def on_playing(self, guild_id: int) -> None:
        log.info("The audio player has started playing in guild %s!", guild_id)

    async def on_idle(self, guild_id: Optional[int] = None) -> None:
        """
        The player for a guild finished. Without a guild id, the oldest
        entry of the active queue is assumed to be the one that finished.
        """
        queue = self.session.active_guilds
        if guild_id is None:
            if not queue:
                return
            guild_id = queue.popleft()
        elif guild_id in queue:
            queue.remove(guild_id)
        await self.destroy(guild_id)
        self.session.settle()

"""
follower/scheduler.py
Owns the single delayed-join timer. The timer keeps no copy of the target:
when it fires it reads session.target_channel_id, which may have been
retargeted or cleared while it was waiting.
"""

from __future__ import annotations
import asyncio
import logging
import math
import random
from typing import TYPE_CHECKING, Optional

import discord

from .config import FollowerConfig
from .state import PresenceSession, PresenceState

if TYPE_CHECKING:
    from bot.voice import VoiceManager

log = logging.getLogger("follower.scheduler")


class JoinScheduler:
    """Arms, cancels and fires the delayed join."""

    def __init__(self, session: PresenceSession, config: FollowerConfig,
                 voice: "VoiceManager"):
        self.session = session
        self.config = config
        self.voice = voice

    @property
    def pending(self) -> bool:
        return self.session.pending_join is not None

    def compute_delay(self) -> int:
        """Uniform over [min_delay, max_delay) milliseconds."""
        lo, hi = self.config.min_delay_ms, self.config.max_delay_ms
        return math.floor(random.random() * (hi - lo) + lo)

    def start_join_timer(self, guild_id: int, adapter: discord.Guild) -> asyncio.Task:
        """
        Arm the join timer. Callers check `pending` first; arming twice would
        orphan the earlier task.
        """
        delay = self.compute_delay()
        log.info("Joining %s in %d milliseconds.", self.session.target_channel_id, delay)
        task = asyncio.create_task(self._join_after(guild_id, adapter, delay))
        self.session.pending_join = task
        self.session.enter(PresenceState.TIMER_PENDING)
        return task

    def cancel(self) -> None:
        task = self.session.pending_join
        self.session.pending_join = None
        if task is not None and not task.done():
            task.cancel()
            log.debug("Join timer cancelled.")

    async def _join_after(self, guild_id: int, adapter: discord.Guild, delay_ms: int) -> None:
        await asyncio.sleep(delay_ms / 1000)
        try:
            channel_id: Optional[int] = self.session.target_channel_id
            if channel_id is None:
                log.info("Join timer fired with no target; staying put.")
                return

            log.info("Joining the channel %s.", channel_id)
            vc = await self.voice.join(adapter, channel_id)
            if vc is None:
                return
            self.session.mark_occupied(guild_id, channel_id)
            try:
                self.voice.play(vc, guild_id)
            except Exception as e:
                log.error("Could not start playback in guild %s: %s", guild_id, e)
                await self.voice.destroy(guild_id)
                return
            self.session.active_guilds.append(guild_id)
        finally:
            if self.session.pending_join is asyncio.current_task():
                self.session.pending_join = None
            self.session.settle()

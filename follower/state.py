"""
follower/state.py
Runtime presence state. One PresenceSession per process, handed explicitly
to the selector, scheduler, state machine and voice manager.

States and the moves expected between them:

    IDLE            -> SCANNING, TIMER_PENDING
    SCANNING        -> IDLE, TIMER_PENDING, CONNECTED
    TIMER_PENDING   -> SCANNING, CONNECTED, IDLE
    CONNECTED       -> SOLO_DEPARTING, SCANNING, IDLE
    SOLO_DEPARTING  -> IDLE, SCANNING

Events interleave across awaits, so an off-table move is logged, not refused.
"""

from __future__ import annotations
import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

log = logging.getLogger("follower.state")


class PresenceState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    TIMER_PENDING = "timer_pending"
    CONNECTED = "connected"
    SOLO_DEPARTING = "solo_departing"


TRANSITIONS: dict[PresenceState, frozenset[PresenceState]] = {
    PresenceState.IDLE: frozenset({PresenceState.SCANNING, PresenceState.TIMER_PENDING}),
    PresenceState.SCANNING: frozenset({
        PresenceState.IDLE, PresenceState.TIMER_PENDING, PresenceState.CONNECTED,
    }),
    PresenceState.TIMER_PENDING: frozenset({
        PresenceState.SCANNING, PresenceState.CONNECTED, PresenceState.IDLE,
    }),
    PresenceState.CONNECTED: frozenset({
        PresenceState.SOLO_DEPARTING, PresenceState.SCANNING, PresenceState.IDLE,
    }),
    PresenceState.SOLO_DEPARTING: frozenset({PresenceState.IDLE, PresenceState.SCANNING}),
}


@dataclass
class PresenceSession:
    """Everything the follower knows about where it is and where it is going."""
    target_channel_id: Optional[int] = None     # channel slated for the next join
    occupied_channel_id: Optional[int] = None   # channel the agent is connected to
    occupied_guild_id: Optional[int] = None
    pending_join: Optional[asyncio.Task] = None  # at most one per process
    active_guilds: deque[int] = field(default_factory=deque)  # oldest first
    state: PresenceState = PresenceState.IDLE

    def enter(self, new_state: PresenceState) -> None:
        if new_state is self.state:
            return
        if new_state not in TRANSITIONS[self.state]:
            log.warning("Unexpected transition %s -> %s", self.state.name, new_state.name)
        else:
            log.debug("State %s -> %s", self.state.name, new_state.name)
        self.state = new_state

    def settle(self) -> None:
        """Move to the resting state implied by the current references."""
        if self.pending_join is not None:
            self.enter(PresenceState.TIMER_PENDING)
        elif self.occupied_channel_id is not None:
            self.enter(PresenceState.CONNECTED)
        else:
            self.enter(PresenceState.IDLE)

    def mark_occupied(self, guild_id: int, channel_id: int) -> None:
        self.occupied_guild_id = guild_id
        self.occupied_channel_id = channel_id

    def clear_occupied(self, guild_id: Optional[int] = None) -> None:
        """Forget the occupied channel. With a guild id, only if it lives in that guild."""
        if guild_id is not None and guild_id != self.occupied_guild_id:
            return
        self.occupied_guild_id = None
        self.occupied_channel_id = None

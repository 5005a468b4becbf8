"""
Pytest configuration and shared fixtures for the presence follower tests.

FakeGuild wires MagicMock Discord objects together so voice channels,
their members and the client cache stay consistent while a test moves
members around.
"""

import asyncio

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
from discord.ext import commands

from bot.voice import VoiceManager
from follower.config import FollowerConfig
from follower.machine import PresenceStateMachine
from follower.state import PresenceSession

AGENT_ID = 999
GUILD_ID = 100


def make_member(member_id, guild=None):
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.guild = guild
    return member


def make_voice_state(channel):
    state = MagicMock(spec=discord.VoiceState)
    state.channel = channel
    return state


class FakeGuild:
    """A guild with voice channels and a client whose cache knows about them."""

    def __init__(self, guild_id=GUILD_ID):
        self.channels = {}
        self.guild = MagicMock(spec=discord.Guild)
        self.guild.id = guild_id
        self.guild.voice_client = None
        self.guild.voice_channels = []
        self.guild.get_channel.side_effect = self.channels.get

        self.client = MagicMock(spec=commands.Bot)
        self.client.get_channel.side_effect = self.channels.get
        self.client.fetch_channel = AsyncMock(side_effect=self._fetch)
        self.client.get_guild.side_effect = (
            lambda gid: self.guild if gid == self.guild.id else None
        )
        self.client.voice_clients = []

    async def _fetch(self, channel_id):
        raise discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Channel")

    def add_channel(self, channel_id, member_ids=()):
        channel = MagicMock(spec=discord.VoiceChannel)
        channel.id = channel_id
        channel.name = f"voice-{channel_id}"
        channel.guild = self.guild
        channel.members = [make_member(mid, self.guild) for mid in member_ids]
        channel.connect = AsyncMock()
        self.channels[channel_id] = channel
        self.guild.voice_channels.append(channel)
        return channel

    def member(self, member_id):
        return make_member(member_id, self.guild)

    def move(self, member_id, src=None, dst=None):
        """Move a member between channels and return the (member, before, after) event."""
        member = self.member(member_id)
        if src is not None:
            src_channel = self.channels[src]
            src_channel.members = [m for m in src_channel.members if m.id != member_id]
        if dst is not None:
            self.channels[dst].members.append(member)
        before = make_voice_state(self.channels.get(src))
        after = make_voice_state(self.channels.get(dst))
        return member, before, after


@pytest.fixture
def make_config():
    def _make(min_delay=60_000, max_delay=60_000, **kwargs):
        return FollowerConfig(
            token="mock_token",
            client_id=AGENT_ID,
            min_delay_ms=min_delay,
            max_delay_ms=max_delay,
            **kwargs,
        )
    return _make


@pytest.fixture
def world():
    return FakeGuild()


@pytest.fixture
def session():
    return PresenceSession()


@pytest.fixture
def voice(world, session):
    """A mocked VoiceManager whose connection state follows the fake guild."""
    vm = MagicMock(spec=VoiceManager)
    vc = MagicMock(spec=discord.VoiceClient)

    async def _join(guild, channel_id):
        guild.voice_client = vc
        return vc

    async def _destroy(guild_id):
        world.guild.voice_client = None
        session.clear_occupied(guild_id)

    vm.connection_for.side_effect = lambda gid: world.guild.voice_client
    vm.join.side_effect = _join
    vm.destroy.side_effect = _destroy
    vm.vc = vc
    return vm


@pytest_asyncio.fixture
async def machine(world, session, voice, make_config):
    sm = PresenceStateMachine(world.client, session, make_config(), voice)
    yield sm
    task = session.pending_join
    sm.scheduler.cancel()
    if task is not None:
        await asyncio.gather(task, return_exceptions=True)

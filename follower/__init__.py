"""Follower package __init__.py"""
from .config import ConfigurationError, FollowerConfig
from .state import PresenceSession, PresenceState
from .machine import PresenceStateMachine

__all__ = [
    "ConfigurationError", "FollowerConfig",
    "PresenceSession", "PresenceState",
    "PresenceStateMachine",
]

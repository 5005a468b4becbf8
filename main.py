"""
main.py
Entry point for the presence-following Discord bot.
Logs in and follows members around the guild's voice channels.
"""

from __future__ import annotations
import asyncio
import logging
import logging.handlers
import sys
from pathlib import Path

import discord
from discord.ext import commands
from dotenv import load_dotenv

from follower.config import ConfigurationError, FollowerConfig

# ──────────────────────────────────────────────
# Environment
# ──────────────────────────────────────────────
load_dotenv()

# ──────────────────────────────────────────────
# Logging setup
# ──────────────────────────────────────────────
Path("logs").mkdir(exist_ok=True)

log_formatter = logging.Formatter(
    "[%(asctime)s] [%(levelname)-8s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)

# Console handler
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(log_formatter)
root_logger.addHandler(console_handler)

# Rotating file handler
file_handler = logging.handlers.RotatingFileHandler(
    "logs/presence_follower.log",
    maxBytes=5_000_000,   # 5 MB
    backupCount=3,
    encoding="utf-8",
)
file_handler.setFormatter(log_formatter)
root_logger.addHandler(file_handler)

log = logging.getLogger("follower.main")

# ──────────────────────────────────────────────
# Bot subclass
# ──────────────────────────────────────────────

class PresenceFollowerBot(commands.Bot):
    def __init__(self, config: FollowerConfig):
        intents = discord.Intents.none()
        intents.guilds       = True
        intents.voice_states = True
        super().__init__(command_prefix="!", intents=intents)

        from bot.voice import VoiceManager
        from follower.machine import PresenceStateMachine
        from follower.state import PresenceSession

        self.config        = config
        self.session       = PresenceSession()
        self.voice_manager = VoiceManager(self, self.session, config)
        self.presence      = PresenceStateMachine(self, self.session, config, self.voice_manager)

    async def setup_hook(self) -> None:
        """Called once after login, before starting the bot's event loop."""
        await self._load_ext("bot.events")
        log.info("Setup complete. Following voice activity.")

    async def _load_ext(self, module: str) -> None:
        """Load a cog from its module, with error logging."""
        try:
            await self.load_extension(module)
            log.info("Loaded extension: %s", module)
        except Exception as e:
            log.exception("Failed to load extension %s: %s", module, e)

    async def close(self) -> None:
        log.info("Shutting down bot...")
        self.presence.scheduler.cancel()
        await self.voice_manager.disconnect_all()
        await super().close()


# ──────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────

def main() -> None:
    try:
        config = FollowerConfig.from_env()
    except ConfigurationError as e:
        log.error("Invalid configuration, cannot start: %s", e)
        sys.exit(1)

    root_logger.setLevel(config.log_level)
    bot = PresenceFollowerBot(config)

    try:
        asyncio.run(bot.start(config.token))
    except KeyboardInterrupt:
        log.info("Bot interrupted by user.")
    except discord.LoginFailure as e:
        log.error("Discord login failed: %s", e)
        sys.exit(1)
    except Exception as e:
        log.exception("Unexpected error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
follower/config.py
Process configuration, read from the environment (.env is loaded by main.py).
Invalid values are fatal: the bot refuses to start.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

log = logging.getLogger("follower.config")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when a required setting is missing or malformed."""


def _require(env: Mapping[str, str], key: str) -> str:
    val = (env.get(key) or "").strip()
    if not val:
        raise ConfigurationError(f"{key} is not set.")
    return val


def _parse_int(env: Mapping[str, str], key: str, minimum: Optional[int] = None) -> int:
    raw = _require(env, key)
    try:
        val = int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}.") from None
    if minimum is not None and val < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {val}.")
    return val


@dataclass(frozen=True)
class FollowerConfig:
    token: str
    client_id: int
    min_delay_ms: int
    max_delay_ms: int
    resource_path: Path = Path("song.mp3")
    ffmpeg_path: str = "ffmpeg"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.min_delay_ms < 0 or self.max_delay_ms < 0:
            raise ConfigurationError("Join delays must be non-negative.")
        if self.max_delay_ms < self.min_delay_ms:
            raise ConfigurationError(
                f"DISCORD_MAX_DELAY ({self.max_delay_ms}) is smaller than "
                f"DISCORD_MIN_DELAY ({self.min_delay_ms})."
            )
        if self.log_level not in _LOG_LEVELS:
            raise ConfigurationError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}.")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "FollowerConfig":
        """
        Build the config from environment variables.

        Required: DISCORD_BOT_TOKEN, DISCORD_CLIENT_ID, DISCORD_MIN_DELAY,
        DISCORD_MAX_DELAY (milliseconds). Optional: AUDIO_RESOURCE_PATH,
        FFMPEG_PATH, LOG_LEVEL.
        """
        env = os.environ if env is None else env
        config = cls(
            token=_require(env, "DISCORD_BOT_TOKEN"),
            client_id=_parse_int(env, "DISCORD_CLIENT_ID"),
            min_delay_ms=_parse_int(env, "DISCORD_MIN_DELAY", minimum=0),
            max_delay_ms=_parse_int(env, "DISCORD_MAX_DELAY", minimum=0),
            resource_path=Path(env.get("AUDIO_RESOURCE_PATH") or "song.mp3"),
            ffmpeg_path=env.get("FFMPEG_PATH") or "ffmpeg",
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
        if not config.resource_path.is_file():
            log.warning("Audio resource %s not found; playback will fail.", config.resource_path)
        return config

"""Bot package __init__.py"""
from .voice import VoiceManager

__all__ = ["VoiceManager"]

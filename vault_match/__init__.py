# vault_match/__init__.py
"""Memory-matching vault minigame: match engine, peek, hints and cutscenes."""

from .config import GameConfig
from .signals import Signal, SignalBus

__all__ = ["GameConfig", "Signal", "SignalBus"]

"""Replay package - deterministic simulated backtest host."""

from .replay_host import ReplayHost
from .validation import validate_bars

__all__ = ["ReplayHost", "validate_bars"]
